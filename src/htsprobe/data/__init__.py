from __future__ import annotations

from importlib import resources
from pathlib import Path

from htsprobe.constants import BUILDS_RESOURCE


def get_builds_path() -> Path:
    return resources.files(__package__).joinpath(BUILDS_RESOURCE)
