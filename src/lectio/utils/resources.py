from importlib import resources
from pathlib import Path


def resource_path(relative_path: str) -> Path:
    """Return the absolute path of a file shipped inside the ``lectio`` package."""
    return Path(str(resources.files("lectio").joinpath(relative_path)))
