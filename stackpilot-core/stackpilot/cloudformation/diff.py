import difflib

DIFF_CONTEXT_LINES = 2


def diff_templates(
    old_template: str,
    new_template: str,
    context: int = DIFF_CONTEXT_LINES,
    old_name: str = "deployed",
    new_name: str = "rendered",
) -> str:
    """Unified diff between the deployed and the rendered template body. Empty if both are equal."""
    old_lines = (old_template or "").splitlines(keepends=True)
    new_lines = (new_template or "").splitlines(keepends=True)
    lines = difflib.unified_diff(
        old_lines, new_lines, fromfile=old_name, tofile=new_name, n=context
    )
    # make sure every line is terminated, also if one of the templates lacks a trailing newline
    return "".join(line if line.endswith("\n") else f"{line}\n" for line in lines)
