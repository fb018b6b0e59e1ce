from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union


def _parse_names_block(lines: List[str]) -> Dict[int, str]:
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
            continue
        names[int(left)] = right

    return names


def load_labels(path: Union[str, Path]) -> List[str]:
    """
    Load the ordered, index-stable label table.

    Two formats are understood:

    - plain text (`labels.txt`): one label per line, blank lines skipped
    - YOLO metadata (`metadata.yaml`): a `names:` block of `id: label` lines,
      ordered by id

    An empty file yields an empty table, which is valid but means nothing can
    ever be detected.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Label file not found: {p}")

    lines = p.read_text(encoding="utf-8").splitlines()
    if p.suffix.lower() in {".yaml", ".yml"}:
        names = _parse_names_block(lines)
        expected = list(range(len(names)))
        if sorted(names) != expected:
            raise ValueError(f"Label ids in {p} must be contiguous from 0, got {sorted(names)}")
        return [names[i] for i in expected]

    return [line.strip() for line in lines if line.strip()]
