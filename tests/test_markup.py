"""Tests for rulemerge.markup -- comment stripping and heading merging."""

from __future__ import annotations

import rulemerge.markup


class TestStripComments:
    def test_whole_line_comment_removed_with_newline(self) -> None:
        content = "- rule one\n<!-- maintainer note -->\n- rule two\n"
        assert rulemerge.markup.strip_comments(content) == "- rule one\n- rule two\n"

    def test_multiline_comment(self) -> None:
        content = "keep\n<!--\nhidden\nlines\n-->\nalso keep\n"
        assert rulemerge.markup.strip_comments(content) == "keep\nalso keep\n"

    def test_inline_comment_keeps_rest_of_line(self) -> None:
        content = "- use tabs <!-- really? --> for Makefiles\n"
        assert (
            rulemerge.markup.strip_comments(content)
            == "- use tabs  for Makefiles\n"
        )

    def test_inline_comment_does_not_swallow_following_comment(self) -> None:
        content = "<!-- a --> text\n<!-- b -->\nafter\n"
        assert rulemerge.markup.strip_comments(content) == " text\nafter\n"

    def test_comment_at_end_without_newline(self) -> None:
        assert rulemerge.markup.strip_comments("body\n<!-- end -->") == "body\n"

    def test_unterminated_comment_left_alone(self) -> None:
        content = "text <!-- never closed\n"
        assert rulemerge.markup.strip_comments(content) == content

    def test_custom_delimiters(self) -> None:
        content = "{# jinja note #}\nvisible\n<!-- html stays -->\n"
        result = rulemerge.markup.strip_comments(content, ("{#", "#}"))
        assert result == "visible\n<!-- html stays -->\n"


class TestHeadingText:
    def test_top_level_heading(self) -> None:
        assert rulemerge.markup.heading_text("# Coding Rules\n") == "Coding Rules"

    def test_closing_hashes_stripped(self) -> None:
        assert rulemerge.markup.heading_text("# Title ##") == "Title"

    def test_trailing_hash_in_word_kept(self) -> None:
        assert rulemerge.markup.heading_text("# C#") == "C#"

    def test_second_level_is_not_top_level(self) -> None:
        assert rulemerge.markup.heading_text("## Sub") is None

    def test_hash_without_space_is_not_heading(self) -> None:
        assert rulemerge.markup.heading_text("#hashtag") is None


class TestMergeHeaders:
    def test_duplicate_heading_dropped_body_kept(self) -> None:
        content = (
            "# Coding Rules\n\n- one\n\n---\n\n"
            "# Coding Rules\n\n- two\n"
        )
        merged = rulemerge.markup.merge_headers(content)
        assert merged.count("# Coding Rules") == 1
        assert "- one" in merged
        assert "- two" in merged
        assert merged.index("- one") < merged.index("- two")

    def test_distinct_headings_kept(self) -> None:
        content = "# A\nx\n# B\ny\n"
        assert rulemerge.markup.merge_headers(content) == content

    def test_subheadings_not_deduplicated(self) -> None:
        content = "# A\n## Notes\nx\n## Notes\ny\n"
        assert rulemerge.markup.merge_headers(content) == content

    def test_comparison_ignores_surrounding_whitespace(self) -> None:
        content = "# Rules\nx\n#   Rules  \ny\n"
        assert rulemerge.markup.merge_headers(content) == "# Rules\nx\ny\n"

    def test_code_fence_lines_are_not_headings(self) -> None:
        content = (
            "# Setup\n"
            "```bash\n"
            "# Setup\n"
            "pip install -e .\n"
            "```\n"
            "# Setup\n"
            "more\n"
        )
        merged = rulemerge.markup.merge_headers(content)
        assert merged == (
            "# Setup\n"
            "```bash\n"
            "# Setup\n"
            "pip install -e .\n"
            "```\n"
            "more\n"
        )

    def test_iter_headings_skips_fences(self) -> None:
        content = "~~~\n# not\n~~~\n# yes\n"
        assert rulemerge.markup.iter_headings(content) == [(3, "yes")]
