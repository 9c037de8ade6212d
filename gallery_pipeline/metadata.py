from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml


MetadataValue = Union[str, List[str]]


class MetadataError(ValueError):
    """A sidecar file exists but is not a YAML mapping."""


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def find_metadata_file(project_dir: Path, names: Iterable[str]) -> Optional[Path]:
    for name in names:
        path = project_dir / name
        if path.is_file():
            return path
    return None


def load_project_metadata(path: Path) -> Dict[str, MetadataValue]:
    """
    Read a project.yaml / metadata.yaml sidecar into {key: str | [str, ...]}.
    A missing file gives an empty mapping; keys with empty values are dropped.
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise MetadataError(f"{path.name}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MetadataError(f"{path.name}: expected a mapping, got {type(data).__name__}")

    result: Dict[str, MetadataValue] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            result[str(key)] = [_as_text(item) for item in value if item is not None]
        else:
            result[str(key)] = _as_text(value)
    return result
