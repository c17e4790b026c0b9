"""
ngm: manage groups of git repositories as projects sharing a branch.

A project names a set of repositories and the branch they are worked on
together. Adding a repository to a project checks the project branch out
in it; removing it returns the repository to a fallback branch.
"""

__version__ = "0.2.0"

__all__ = [
    # Registry
    "Registry",
    "RegistryError",
    "Project",
    "Repository",
    # API
    "NgmApi",
    # Pipeline
    "Pipeline",
    "Continue",
    "Failed",
    "Completed",
    "CLIContext",
]


# Lazy imports, resolved on first access
def __getattr__(name):
    if name in ("Registry", "RegistryError", "Project", "Repository"):
        from . import registry

        return getattr(registry, name)
    if name == "NgmApi":
        from .api import NgmApi

        return NgmApi
    if name in ("Pipeline", "Continue", "Failed", "Completed"):
        from . import pipeline

        return getattr(pipeline, name)
    if name == "CLIContext":
        from .context import CLIContext

        return CLIContext
    raise AttributeError(f"module 'ngm' has no attribute {name!r}")
