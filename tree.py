# Copyright (C) 2025 Fabian Valle-simmons
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
File tree for a repository.

A tree is a plain nested dict: directories map segment names to subtrees,
files map to None. Dict insertion order is the order paths were seen.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

FileTree = Dict[str, Any]


class TreeCollisionError(ValueError):
    """A path segment is used both as a directory and as a file."""

    def __init__(self, path: str, segment: str):
        self.path = path
        self.segment = segment
        super().__init__(f"'{segment}' is both a file and a directory (while adding '{path}')")


def build_file_tree(paths: Iterable[str], separator: str = "/") -> FileTree:
    root: FileTree = {}

    for path in paths:
        parts = path.split(separator)
        current = root

        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            prefix = separator.join(parts[:i + 1])

            if part not in current:
                current[part] = None if is_last else {}
            elif is_last and current[part] is not None:
                raise TreeCollisionError(path, prefix)
            elif not is_last and current[part] is None:
                raise TreeCollisionError(path, prefix)

            if not is_last:
                current = current[part]

    return root


@dataclass(frozen=True)
class TreeRow:
    path: str
    name: str
    depth: int
    is_dir: bool
    expanded: bool = False


def render_tree(tree: FileTree, expanded: Dict[str, bool], parent_path: str = "", depth: int = 0) -> List[TreeRow]:
    """Flatten the visible part of `tree` into rows, folders before files at every level."""
    rows = []
    folders = [(name, subtree) for name, subtree in tree.items() if subtree is not None]
    files = [name for name, subtree in tree.items() if subtree is None]

    for name, subtree in folders:
        full_path = f"{parent_path}/{name}" if parent_path else name
        is_open = expanded.get(full_path, False)
        rows.append(TreeRow(path=full_path, name=name, depth=depth, is_dir=True, expanded=is_open))
        if is_open:
            rows.extend(render_tree(subtree, expanded, full_path, depth + 1))

    for name in files:
        full_path = f"{parent_path}/{name}" if parent_path else name
        rows.append(TreeRow(path=full_path, name=name, depth=depth, is_dir=False))

    return rows


class TreeNavigator:
    """Expand/collapse state for one file tree, plus the file-selected callback."""

    def __init__(self, tree: Optional[FileTree] = None, on_file_selected: Callable[[str], Any] = None):
        self.tree: FileTree = tree or {}
        self.expanded: Dict[str, bool] = {}
        self._on_file_selected = on_file_selected

    def load(self, tree: FileTree):
        # Entries for paths that no longer exist are never read
        self.tree = tree

    def render(self) -> List[TreeRow]:
        return render_tree(self.tree, self.expanded)

    def is_expanded(self, path: str) -> bool:
        return self.expanded.get(path, False)

    def toggle(self, path: str) -> bool:
        self.expanded[path] = not self.expanded.get(path, False)
        return self.expanded[path]

    def select_file(self, path: str):
        if self._on_file_selected is None:
            return None
        return self._on_file_selected(path)
