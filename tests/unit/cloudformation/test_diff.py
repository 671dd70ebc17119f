from stackpilot.cloudformation.diff import diff_templates


def test_equal_templates():
    assert diff_templates("a\nb\n", "a\nb\n") == ""


def test_unified_diff_with_two_lines_of_context():
    old = "\n".join(str(i) for i in range(10)) + "\n"
    new = old.replace("5\n", "five\n")

    diff = diff_templates(old, new)

    assert diff.splitlines() == [
        "--- deployed",
        "+++ rendered",
        "@@ -4,5 +4,5 @@",
        " 3",
        " 4",
        "-5",
        "+five",
        " 6",
        " 7",
    ]


def test_missing_trailing_newline():
    diff = diff_templates("a", "b")

    assert diff.endswith("\n")
    assert "-a\n" in diff
    assert "+b\n" in diff


def test_empty_deployed_template():
    diff = diff_templates("", '{\n  "a": 1\n}')

    assert '+  "a": 1\n' in diff
    assert diff_templates(None, "") == ""
