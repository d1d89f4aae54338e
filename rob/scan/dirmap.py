"""
Directory maps for ``rob map``.

Each directory is weighted by its depth plus the weight of everything below
it, so deep and wide subtrees sort first when the map is printed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rob.scan.walker import list_children


@dataclass
class DirMap:
    path: Path
    name: str
    depth: int
    weight: int
    children: list["DirMap"] = field(default_factory=list)


def build_dir_map(root: Path, name: str = "", depth: int = 0) -> DirMap:
    """Build the weighted tree of directories under ``root``.

    Unreadable directories appear as leaves.
    """
    root = Path(root)
    node = DirMap(path=root, name=name or root.name or str(root), depth=depth, weight=depth)
    try:
        dirs, _ = list_children(root)
    except OSError:
        return node

    for child in dirs:
        sub = build_dir_map(child, child.name, depth + 1)
        node.weight += sub.weight
        node.children.append(sub)

    node.children.sort(key=lambda d: d.weight, reverse=True)
    return node


def render_dir_map(tree: DirMap, spaces: int = 4) -> str:
    """Render a DirMap as an ASCII tree, heaviest branches first."""
    spaces = max(spaces, 1)
    lines = [f"+{tree.name}"]

    def render(node: DirMap, prefix: str, last: bool) -> None:
        lines.append(f"{prefix}|")
        lines.append(f"{prefix}o{'-' * (spaces - 1)}>/{node.name}")
        child_prefix = prefix + (" " * spaces if last else "|" + " " * (spaces - 1))
        for i, child in enumerate(node.children):
            render(child, child_prefix, i == len(node.children) - 1)

    for i, child in enumerate(tree.children):
        render(child, "", i == len(tree.children) - 1)

    return "\n".join(lines) + "\n"
