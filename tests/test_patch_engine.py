import unittest

from sitepatch.files import ProjectFile, clone_files
from sitepatch.markers import SearchReplaceOp
from sitepatch.patch_engine import (
    SKIP_FILE_NOT_FOUND,
    SKIP_SEARCH_NOT_FOUND,
    apply_chunk,
    apply_search_replace,
    extract_project_name,
)
from tests.helpers import new_file, project_name, search_replace, update_file


def _index(content: str):
    return [ProjectFile("index.html", content)]


class NewFileTests(unittest.TestCase):
    def test_creates_files_in_order_without_change_records(self) -> None:
        files = []
        chunk = new_file("index.html", "<h1>Hi</h1>") + new_file("style.css", "h1 { color: red; }", "css")
        result = apply_chunk(chunk, files)
        self.assertIs(result.files, files)
        self.assertEqual([f.path for f in files], ["index.html", "style.css"])
        self.assertEqual(files[0].content, "<h1>Hi</h1>")
        self.assertEqual(files[1].content, "h1 { color: red; }")
        self.assertEqual(result.changed_ranges, [])
        self.assertEqual(result.touched, ["index.html", "style.css"])

    def test_existing_file_is_overwritten(self) -> None:
        files = _index("<p>old</p>")
        apply_chunk(new_file("/index.html", "<p>new</p>"), files)
        self.assertEqual(len(files), 1)
        self.assertEqual(files[0].path, "index.html")
        self.assertEqual(files[0].content, "<p>new</p>")

    def test_traversal_is_normalized_away(self) -> None:
        files = []
        apply_chunk(new_file("../../secret.html", "x"), files)
        self.assertEqual(files[0].path, "secret.html")

    def test_body_without_fence_is_used_trimmed(self) -> None:
        files = []
        apply_chunk("<<<<<<< NEW_FILE_START notes.txt >>>>>>> NEW_FILE_END\n  plain text  \n", files)
        self.assertEqual(files[0].content, "plain text")


class UpdateFileTests(unittest.TestCase):
    def test_new_file_then_update_round_trip(self) -> None:
        files = []
        apply_chunk(new_file("index.html", "<h1>Hi</h1>"), files)
        result = apply_chunk(update_file("index.html", ("<h1>Hi</h1>", "<h1>Bye</h1>")), files)
        self.assertEqual(files[0].content, "<h1>Bye</h1>")
        self.assertEqual(result.changed_ranges, [(1, 1)])

    def test_whitespace_tolerant_match(self) -> None:
        files = _index("<div>\n  <h1>Hi</h1>\n</div>")
        result = apply_chunk(update_file("index.html", ("<h1>Hi</h1>", "<h1>Bye</h1>")), files)
        self.assertEqual(files[0].content, "<div>\n  <h1>Bye</h1>\n</div>")
        self.assertEqual(result.changed_ranges, [(2, 2)])

    def test_empty_search_prepends(self) -> None:
        files = _index("line1")
        result = apply_chunk(update_file("index.html", ("", "line0")), files)
        self.assertEqual(files[0].content, "line0\nline1")
        self.assertEqual(result.changed_ranges, [(1, 1)])

    def test_unresolvable_search_is_noop(self) -> None:
        files = _index("<p>A</p>")
        result = apply_chunk(update_file("index.html", ("<p>ZZZ</p>", "<p>B</p>")), files)
        self.assertEqual(files[0].content, "<p>A</p>")
        self.assertEqual(result.changed_ranges, [])
        self.assertEqual(len(result.skipped), 1)
        self.assertEqual(result.skipped[0].reason, SKIP_SEARCH_NOT_FOUND)
        self.assertEqual(result.skipped[0].search, "<p>ZZZ</p>")

    def test_unknown_file_is_noop(self) -> None:
        files = _index("<p>A</p>")
        before = clone_files(files)
        result = apply_chunk(update_file("missing.css", ("p {}", "p { margin: 0; }")), files)
        self.assertEqual(files, before)
        self.assertEqual(result.changed_ranges, [])
        self.assertEqual([(s.path, s.reason) for s in result.skipped], [("missing.css", SKIP_FILE_NOT_FOUND)])

    def test_first_occurrence_only(self) -> None:
        files = _index("<p>X</p><p>X</p>")
        apply_chunk(update_file("index.html", ("<p>X</p>", "<p>Y</p>")), files)
        self.assertEqual(files[0].content, "<p>Y</p><p>X</p>")

    def test_empty_replace_deletes(self) -> None:
        files = _index("<p>A</p>\n<p>B</p>")
        result = apply_chunk(update_file("index.html", ("<p>B</p>", "")), files)
        self.assertEqual(files[0].content, "<p>A</p>\n")
        self.assertEqual(result.changed_ranges, [(2, 2)])

    def test_multi_line_replace_range(self) -> None:
        files = _index("<ul>\n  <li>One</li>\n</ul>")
        result = apply_chunk(
            update_file("index.html", ("  <li>One</li>", "  <li>One</li>\n  <li>Two</li>")),
            files,
        )
        self.assertEqual(files[0].content, "<ul>\n  <li>One</li>\n  <li>Two</li>\n</ul>")
        self.assertEqual(result.changed_ranges, [(2, 3)])

    def test_several_files_and_ops_in_one_chunk(self) -> None:
        files = [
            ProjectFile("index.html", "<h1>Title</h1>\n<p>Body</p>"),
            ProjectFile("style.css", "h1 { color: red; }"),
        ]
        chunk = (
            "Sure, updating both files.\n"
            + update_file("index.html", ("<h1>Title</h1>", "<h1>New</h1>"), ("<p>Body</p>", "<p>Text</p>"))
            + update_file("/style.css", ("h1 { color: red; }", "h1 { color: blue; }"))
        )
        result = apply_chunk(chunk, files)
        self.assertEqual(files[0].content, "<h1>New</h1>\n<p>Text</p>")
        self.assertEqual(files[1].content, "h1 { color: blue; }")
        self.assertEqual(result.changed_ranges, [(1, 1), (2, 2), (1, 1)])
        self.assertEqual(result.touched, ["index.html", "style.css"])

    def test_updates_run_before_new_files(self) -> None:
        files = _index("<p>Home</p>")
        chunk = new_file("about.html", "<p>About</p>") + update_file("about.html", ("<p>About</p>", "<p>Us</p>"))
        result = apply_chunk(chunk, files)
        self.assertEqual(files[1].content, "<p>About</p>")
        self.assertEqual(result.skipped[0].reason, SKIP_FILE_NOT_FOUND)

    def test_incomplete_trailing_operation_waits(self) -> None:
        files = _index("<p>A</p>")
        chunk = update_file("index.html", ("<p>A</p>", "<p>B</p>")) + "<<<<<<< SEARCH\n<p>B</p>\n=======\n<p>C"
        result = apply_chunk(chunk, files)
        self.assertEqual(files[0].content, "<p>B</p>")
        self.assertEqual(result.changed_ranges, [(1, 1)])

    def test_crlf_line_endings(self) -> None:
        files = _index("<p>A</p>")
        chunk = update_file("index.html", ("<p>A</p>", "<p>B</p>")).replace("\n", "\r\n")
        apply_chunk(chunk, files)
        self.assertEqual(files[0].content, "<p>B</p>")

    def test_garbage_never_raises(self) -> None:
        files = _index("<p>A</p>")
        for chunk in (
            "<<<<<<< UPDATE_FILE_START >>>>>>> UPDATE_FILE_END\n<<<<<<< SEARCH\n=======",
            "<<<<<<< NEW_FILE_START",
            ">>>>>>> REPLACE ======= <<<<<<< SEARCH",
            "",
        ):
            apply_chunk(chunk, files)
        self.assertEqual(files, _index("<p>A</p>"))


class FallbackTests(unittest.TestCase):
    def test_bare_operations_apply_to_first_file(self) -> None:
        files = [ProjectFile("index.html", "<p>A</p>"), ProjectFile("style.css", "p {}")]
        result = apply_chunk(search_replace("<p>A</p>", "<p>B</p>"), files)
        self.assertEqual(files[0].content, "<p>B</p>")
        self.assertEqual(files[1].content, "p {}")
        self.assertEqual(result.changed_ranges, [(1, 1)])

    def test_any_update_marker_disables_fallback(self) -> None:
        files = _index("<p>A</p>")
        chunk = search_replace("<p>A</p>", "<p>B</p>") + "<<<<<<< UPDATE_FILE_START style.c"
        apply_chunk(chunk, files)
        self.assertEqual(files[0].content, "<p>A</p>")

    def test_new_file_block_disables_fallback(self) -> None:
        files = _index("<p>A</p>")
        chunk = search_replace("<p>A</p>", "<p>B</p>") + new_file("about.html", "<p>About</p>")
        apply_chunk(chunk, files)
        self.assertEqual(files[0].content, "<p>A</p>")

    def test_split_update_block_misfires_onto_first_file(self) -> None:
        # The header arrived in an earlier chunk; the caller passes only the suffix.
        files = [ProjectFile("index.html", "<p>A</p>"), ProjectFile("about.html", "<p>A</p>")]
        apply_chunk(search_replace("<p>A</p>", "<p>B</p>"), files)
        self.assertEqual(files[0].content, "<p>B</p>")
        self.assertEqual(files[1].content, "<p>A</p>")

    def test_no_files_is_noop(self) -> None:
        files = []
        result = apply_chunk(search_replace("a", "b"), files)
        self.assertEqual(files, [])
        self.assertEqual(result.skipped[0].reason, SKIP_FILE_NOT_FOUND)


class ProjectNameTests(unittest.TestCase):
    def test_name_only_response_leaves_files_alone(self) -> None:
        files = _index("<p>A</p>")
        result = apply_chunk(project_name("Sunny Bakery") + "Here you go.", files)
        self.assertEqual(result.project_name, "Sunny Bakery")
        self.assertEqual(files, _index("<p>A</p>"))
        self.assertEqual(result.changed_ranges, [])

    def test_name_alongside_files(self) -> None:
        files = []
        result = apply_chunk(project_name("Portfolio") + new_file("index.html", "<p>Hi</p>"), files)
        self.assertEqual(result.project_name, "Portfolio")
        self.assertEqual(len(files), 1)

    def test_extract_project_name(self) -> None:
        self.assertEqual(extract_project_name(project_name(" Coffee Co ")), "Coffee Co")
        self.assertIsNone(extract_project_name("no name here"))


class ApplySearchReplaceTests(unittest.TestCase):
    def test_regex_metacharacters_in_content(self) -> None:
        content, change = apply_search_replace(
            "price: $5 (approx.)", SearchReplaceOp("$5 (approx.)", "$6 (approx.)")
        )
        self.assertEqual(content, "price: $6 (approx.)")
        self.assertEqual(change, (1, 1))

    def test_miss_returns_content_unchanged(self) -> None:
        content, change = apply_search_replace("abc", SearchReplaceOp("xyz", "q"))
        self.assertEqual(content, "abc")
        self.assertIsNone(change)

    def test_multi_line_prepend_range(self) -> None:
        content, change = apply_search_replace("body", SearchReplaceOp("", "<!-- a -->\n<!-- b -->"))
        self.assertEqual(content, "<!-- a -->\n<!-- b -->\nbody")
        self.assertEqual(change, (1, 2))


if __name__ == "__main__":
    unittest.main()
