"""
Git object operations for central_sync.

Provides the history-rewriting primitives on top of GitPython: module
discovery, subtree lookup and grafting, and commit reconstruction. Nothing
here touches the network; every write goes to the local object database and
is content-addressed, so repeating a write yields the same object.
"""

import posixpath
from io import BytesIO
from pathlib import PurePosixPath

from git import Commit, Repo, TagObject, Tree
from git.exc import BadName, BadObject, GitCommandError
from git.objects.fun import tree_to_stream
from gitdb import IStream

from .errors import (
    ModulePathConstraintViolation,
    NotACommit,
    ObjectWriteError,
    RevisionParseError,
)

# Entry mode of a sub-directory inside a tree object
TREE_MODE = Tree.tree_id << 12

PLACEHOLDER_MESSAGE = "no message"

# (binsha, mode, name), the layout GitPython uses for tree entries
TreeEntry = tuple[bytes, int, str]


def split_module_path(module_path: str) -> tuple[str, str]:
    """
    Split a module path into its parent directory and module name.

    Raises:
        ModulePathConstraintViolation: if the path is not exactly two segments
    """
    parts = PurePosixPath(module_path.strip("/")).parts
    if len(parts) != 2 or any(part in (".", "..") for part in parts):
        raise ModulePathConstraintViolation(
            f"Module path must have exactly two segments: {module_path!r}"
        )
    return parts[0], parts[1]


def resolve_commit(repo: Repo, rev: str) -> Commit:
    """Resolve a revision string to a commit, peeling annotated tags."""
    try:
        obj = repo.rev_parse(rev)
    except (BadName, BadObject, ValueError, GitCommandError) as e:
        raise RevisionParseError(f"Cannot resolve revision {rev!r}") from e

    while isinstance(obj, TagObject):
        obj = obj.object
    if not isinstance(obj, Commit):
        raise NotACommit(f"{rev!r} resolves to a {obj.type}, not a commit")
    return obj


def subtree_at(tree: Tree, path: str) -> Tree | None:
    """Get the tree at ``path`` below ``tree``, or None if absent or not a tree."""
    path = path.strip("/")
    if not path:
        return tree
    try:
        item = tree / path
    except KeyError:
        return None
    if item.type != "tree":
        return None
    return item


def discover_modules(repo: Repo, rev: str, modules_dir: str = "modules") -> list[str]:
    """
    List the module paths declared under ``modules_dir`` at ``rev``.

    Only directories count as modules. The result is sorted by name so that
    pushes happen in the same order on every run.
    """
    commit = resolve_commit(repo, rev)
    modules = subtree_at(commit.tree, modules_dir)
    if modules is None:
        return []
    return sorted(f"{modules_dir}/{item.name}" for item in modules.trees)


def tree_entries(tree: Tree | None) -> list[TreeEntry]:
    """Get the direct entries of a tree (an empty list for None)."""
    if tree is None:
        return []
    return [(item.binsha, item.mode, posixpath.basename(item.path)) for item in tree]


def _tree_sort_key(entry: TreeEntry) -> bytes:
    # git orders sub-trees as if their name ended with '/'
    _, mode, name = entry
    key = name.encode("utf-8")
    if mode == TREE_MODE:
        key += b"/"
    return key


def write_tree(repo: Repo, entries: list[TreeEntry]) -> Tree:
    """Store a tree object built from ``entries`` and return it."""
    stream = BytesIO()
    tree_to_stream(sorted(entries, key=_tree_sort_key), stream.write)
    size = stream.tell()
    stream.seek(0)
    try:
        istream = repo.odb.store(IStream(Tree.type, size, stream))
    except (OSError, ValueError) as e:
        raise ObjectWriteError(f"Could not write tree object: {e}") from e
    return Tree(repo, istream.binsha, TREE_MODE, "")


def _with_entry(entries: list[TreeEntry], name: str, binsha: bytes) -> list[TreeEntry]:
    """Return ``entries`` with ``name`` inserted or overwritten as a sub-tree."""
    updated = [entry for entry in entries if entry[2] != name]
    updated.append((binsha, TREE_MODE, name))
    return updated


def graft(repo: Repo, module_path: str, module_tree: Tree, master_tree: Tree) -> Tree:
    """
    Place ``module_tree`` at ``module_path`` inside ``master_tree``.

    Every entry of ``master_tree`` outside ``module_path`` keeps its object
    id. Neither input tree is modified; new tree objects are written for the
    module's parent directory and for the root.
    """
    parent, name = split_module_path(module_path)

    parent_entries = tree_entries(subtree_at(master_tree, parent))
    parent_tree = write_tree(repo, _with_entry(parent_entries, name, module_tree.binsha))

    root_entries = tree_entries(master_tree)
    return write_tree(repo, _with_entry(root_entries, parent, parent_tree.binsha))


def rewrite_commit(
    repo: Repo,
    base: Commit,
    parents: list[Commit],
    tree: Tree,
) -> Commit:
    """
    Create a commit with ``base``'s authorship and message on a new tree and parents.

    When parents are given, HEAD is detached at the first parent before the
    write and moved to the new commit afterwards.
    """
    if parents:
        repo.head.set_reference(parents[0])

    # an empty message is kept as is; only a missing one gets the placeholder
    message = base.message if base.message is not None else PLACEHOLDER_MESSAGE
    new_commit = Commit(
        repo,
        Commit.NULL_BIN_SHA,
        tree,
        base.author,
        base.authored_date,
        base.author_tz_offset,
        base.committer,
        base.committed_date,
        base.committer_tz_offset,
        message,
        list(parents),
        base.encoding,
    )

    # Commit.create_from_tree reads identities and dates from config and the
    # environment, so it cannot copy both signatures verbatim
    stream = BytesIO()
    new_commit._serialize(stream)
    size = stream.tell()
    stream.seek(0)
    try:
        istream = repo.odb.store(IStream(Commit.type, size, stream))
    except (OSError, ValueError) as e:
        raise ObjectWriteError(f"Could not write commit object: {e}") from e
    new_commit.binsha = istream.binsha

    if parents:
        repo.head.set_reference(new_commit)
    return new_commit


def is_descendant(repo: Repo, new: Commit, old: Commit) -> bool:
    """Check whether ``new`` is ``old`` or has ``old`` among its ancestors."""
    return repo.is_ancestor(old, new)


def commit_range(repo: Repo, old: Commit, new: Commit) -> list[Commit]:
    """Get the commits in ``(old, new]``, oldest first and parents before children."""
    return list(
        repo.iter_commits(f"{old.hexsha}..{new.hexsha}", topo_order=True, reverse=True)
    )
