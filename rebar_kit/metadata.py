from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union


def _parse_names_mapping(lines: List[str]) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            # next top-level key ends the block
            if not raw.startswith((" ", "\t")):
                break
            continue
        if int(left) in names:
            raise ValueError(f"Duplicate class id {left} in names mapping")
        names[int(left)] = right

    return names


def load_class_names(metadata_path: Union[str, Path]) -> List[str]:
    """
    Load the ordered class label table (index = class id).

    Two formats are understood:

        names:
          0: rebar
          1: stirrup

    or a plain text file with one label per line (blank lines and `#`
    comments ignored). Ids must run from 0 without gaps.

    This function intentionally avoids adding a PyYAML dependency.
    """

    path = Path(metadata_path)
    if not path.exists():
        raise FileNotFoundError(f"Class label file not found: {path}")

    lines = path.read_text(encoding="utf-8").splitlines()

    if any(line.strip() == "names:" for line in lines):
        mapping = _parse_names_mapping(lines)
        expected = list(range(len(mapping)))
        if sorted(mapping) != expected:
            raise ValueError(f"Class ids in {path} must be contiguous from 0, got {sorted(mapping)}")
        labels = [mapping[i] for i in expected]
    else:
        labels = [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]

    if not labels:
        raise ValueError(f"No class labels found in {path}")
    return labels
