import pytest

from tree import TreeCollisionError, TreeNavigator, build_file_tree, render_tree


def leaf_paths(tree, prefix=""):
    paths = []
    for name, subtree in tree.items():
        full_path = f"{prefix}/{name}" if prefix else name
        if subtree is None:
            paths.append(full_path)
        else:
            paths.extend(leaf_paths(subtree, full_path))
    return paths


def test_build_file_tree_nests_directories():
    tree = build_file_tree(["src/a.ts", "src/b/c.ts", "README.md"])

    assert tree == {"src": {"a.ts": None, "b": {"c.ts": None}}, "README.md": None}


@pytest.mark.parametrize(
    "paths",
    [
        ["a.py"],
        ["src/a.ts", "src/b/c.ts"],
        ["docs/index.md", "src/pkg/mod.py", "src/pkg/sub/deep.py", "setup.cfg", "src/main.py"],
    ],
)
def test_leaf_paths_reproduce_inputs(paths):
    tree = build_file_tree(paths)

    assert sorted(leaf_paths(tree)) == sorted(paths)


def test_duplicate_paths_are_ignored():
    assert build_file_tree(["a/b.py", "a/b.py"]) == {"a": {"b.py": None}}


def test_no_normalization_of_segments():
    tree = build_file_tree(["a//b", "./c"])

    assert tree == {"a": {"": {"b": None}}, ".": {"c": None}}


def test_file_then_directory_collision():
    with pytest.raises(TreeCollisionError) as exc_info:
        build_file_tree(["src", "src/main.py"])

    assert exc_info.value.segment == "src"
    assert exc_info.value.path == "src/main.py"


def test_directory_then_file_collision():
    with pytest.raises(TreeCollisionError):
        build_file_tree(["src/lib/util.py", "src/lib"])


def test_collision_is_a_value_error():
    with pytest.raises(ValueError):
        build_file_tree(["a", "a/b"])


def test_render_lists_folders_before_files_in_insertion_order():
    tree = build_file_tree(["z.txt", "b/x.py", "a.txt", "a/y.py"])

    rows = render_tree(tree, {})

    assert [(row.name, row.is_dir) for row in rows] == [
        ("b", True),
        ("a", True),
        ("z.txt", False),
        ("a.txt", False),
    ]


def test_render_shows_children_of_expanded_folders_only():
    tree = build_file_tree(["src/app/main.py", "src/util.py", "README.md"])

    rows = render_tree(tree, {"src": True})

    assert [(row.path, row.depth, row.expanded) for row in rows] == [
        ("src", 0, True),
        ("src/app", 1, False),
        ("src/util.py", 1, False),
        ("README.md", 0, False),
    ]


def test_render_is_deterministic():
    tree = build_file_tree(["a/b/c.py", "a/d.py", "e.py"])
    state = {"a": True, "a/b": True}

    assert render_tree(tree, state) == render_tree(tree, dict(state))


def test_navigator_starts_collapsed():
    navigator = TreeNavigator(build_file_tree(["src/a.py", "src/b/c.py"]))

    assert [row.path for row in navigator.render()] == ["src"]
    assert navigator.is_expanded("src") is False


def test_toggle_twice_restores_state():
    navigator = TreeNavigator(build_file_tree(["src/a.py"]))

    assert navigator.toggle("src") is True
    assert navigator.toggle("src") is False
    for _ in range(4):
        navigator.toggle("src")
    assert navigator.is_expanded("src") is False


def test_collapsing_parent_keeps_descendant_state():
    navigator = TreeNavigator(build_file_tree(["src/pkg/mod.py"]))
    navigator.toggle("src")
    navigator.toggle("src/pkg")

    navigator.toggle("src")
    assert [row.path for row in navigator.render()] == ["src"]

    navigator.toggle("src")
    assert [row.path for row in navigator.render()] == ["src", "src/pkg", "src/pkg/mod.py"]


def test_select_file_calls_owner_without_changing_state():
    selected = []
    tree = build_file_tree(["src/a.py"])
    navigator = TreeNavigator(tree, on_file_selected=selected.append)
    navigator.toggle("src")

    navigator.select_file("src/a.py")

    assert selected == ["src/a.py"]
    assert navigator.tree is tree
    assert navigator.expanded == {"src": True}


def test_load_replaces_tree_and_keeps_expansion():
    navigator = TreeNavigator(build_file_tree(["old/a.py"]))
    navigator.toggle("old")

    navigator.load(build_file_tree(["new/b.py"]))

    assert [row.path for row in navigator.render()] == ["new"]
    assert navigator.expanded == {"old": True}
