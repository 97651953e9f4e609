"""Render query results as markdown."""

import io

from qquery.models.node import NoMatchingTasks, QueryResult, Tag


def _tag_ref(tag: Tag) -> str:
    if " " in tag.original_name:
        return f"#[[{tag.original_name}]]"
    return f"#{tag.original_name}"


def _tag_list(tags: tuple[Tag, ...]) -> str:
    return " ".join(_tag_ref(t) for t in tags)


def render_result_as_markdown(result: QueryResult | NoMatchingTasks) -> str:
    """Render a query outcome as a markdown task list.

    The first line of each task's content becomes a list item; overflow past the
    task cap is summarised in a final item.
    """
    out = io.StringIO()
    if result.selected_tags:
        out.write(f"Selected: {_tag_list(result.selected_tags)}\n")

    if isinstance(result, NoMatchingTasks):
        out.write("No matching tasks.\n")
        return out.getvalue()

    if result.remaining_tags:
        out.write(f"Tags: {_tag_list(result.remaining_tags)}\n")
    out.write("\n")

    for task in result.tasks:
        lines = task.content.split("\n")
        out.write(f"- {lines[0]}\n")

    if result.overflow:
        count = len(result.overflow)
        noun = "task" if count == 1 else "tasks"
        out.write(f"- ... ({count} more {noun})\n")

    return out.getvalue()
