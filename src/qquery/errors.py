"""Exceptions raised by the query engine."""


class CorruptTreeError(RuntimeError):
    """The document forest is inconsistent (cycle, missing root, dangling child).

    Aborts the current query: any ordering computed from such a tree is unsound.
    """
