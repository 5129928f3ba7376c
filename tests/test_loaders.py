#!/usr/bin/env python3
"""
test_loaders.py - Tests for template loading and compiled-template caching
"""

from pathlib import Path

import pytest

from quill import (
    MemoryLoader,
    MemoryTemplateCache,
    Template,
    TemplateLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    checksum,
    compile_template,
    deserialize,
    load_template,
    serialize,
)


@pytest.fixture
def test_data_dir():
    """Path to the template fixtures."""
    return Path(__file__).parent / "templates"


@pytest.fixture
def template_loader(test_data_dir):
    """TemplateLoader over the fixtures."""
    return TemplateLoader(test_data_dir)


PAGE_OUTPUT = (
    "<h1>Orders</h1>\n"
    "\n"
    "<ul>\n"
    "  <li>pen x2</li>\n"
    "  <li>ink</li>\n"
    "</ul>\n"
    "<p>2 items</p>\n"
)

PAGE_VARIABLES = {
    "title": "Orders",
    "items": [{"name": "pen", "qty": 2}, {"name": "ink", "qty": 1}],
}


# ============================================================================
# Loaders
# ============================================================================

class TestTemplateLoader:
    """Test loading documents from a directory."""

    def test_load_keeps_line_endings(self, template_loader):
        """Test documents load as lines with their newlines."""
        lines = template_loader.load("partials/header.html")
        assert lines == ["<h1>{title}</h1>\n"]

    def test_missing_template(self, template_loader):
        """Test a missing file raises TemplateNotFound."""
        with pytest.raises(TemplateNotFound, match="nope.html"):
            template_loader.load("nope.html")

    def test_missing_template_is_file_not_found(self, template_loader):
        """Test TemplateNotFound is a FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            template_loader.load("nope.html")

    def test_path_outside_directory(self, tmp_path):
        """Test paths may not leave the template directory."""
        (tmp_path / "secret.txt").write_text("secret")
        templates = tmp_path / "templates"
        templates.mkdir()

        loader = TemplateLoader(templates)
        with pytest.raises(TemplateNotFound):
            loader.load("../secret.txt")

    def test_directory_is_not_a_template(self, template_loader):
        """Test a directory path is not loadable."""
        with pytest.raises(TemplateNotFound):
            template_loader.load("partials")

    def test_list_templates(self, template_loader):
        """Test listing relative template paths."""
        assert template_loader.list_templates() == [
            "broken.html",
            "page.html",
            "partials/header.html",
        ]


class TestMemoryLoader:
    """Test loading documents from a dict."""

    def test_load(self):
        """Test text is split into lines."""
        loader = MemoryLoader({"a.html": "one\ntwo\n"})
        assert loader.load("a.html") == ["one\n", "two\n"]

    def test_missing(self):
        """Test unknown paths raise TemplateNotFound."""
        with pytest.raises(TemplateNotFound):
            MemoryLoader({}).load("a.html")


# ============================================================================
# Compiling from files
# ============================================================================

class TestLoadTemplate:
    """Test compiling templates read through a loader."""

    def test_page(self, template_loader):
        """Test a page with a comment, an include, a loop and a condition."""
        template = load_template("page.html", template_loader)
        template.update(PAGE_VARIABLES)
        assert template.render() == PAGE_OUTPUT

    def test_template_named_after_file(self, template_loader):
        """Test the template name is the file name."""
        template = load_template("partials/header.html", template_loader)
        assert template.name == "header.html"

    def test_base_path(self, test_data_dir):
        """Test includes resolve against base_path."""
        template = compile_template("{include partials/header.html}", base_path=test_data_dir)
        template.set("title", "T")
        assert template.render() == "<h1>T</h1>\n"

    def test_syntax_error_names_template(self, template_loader):
        """Test syntax errors carry the template name and line."""
        with pytest.raises(TemplateSyntaxError) as exc_info:
            load_template("broken.html", template_loader)
        assert exc_info.value.template == "broken.html"
        assert exc_info.value.line == 1
        assert "broken.html" in str(exc_info.value)


# ============================================================================
# Caching
# ============================================================================

class TestTemplateCache:
    """Test compiled-template caching and serialization."""

    def test_checksum(self):
        """Test text and lines of the same document share a checksum."""
        assert checksum("a\nb\n") == checksum(["a\n", "b\n"])
        assert checksum("a") != checksum("b")

    def test_serialize_round_trip(self):
        """Test a serialized template renders the same after loading."""
        template = compile_template("{if a}{foreach rows}{x}{/foreach}{/if}")
        restored = deserialize(serialize(template))
        restored.update({"a": True, "rows": [{"x": 1}, {"x": 2}]})
        assert restored.render() == "12"

    def test_deserialize_rejects_other_payloads(self):
        """Test only templates can be restored."""
        import pickle

        with pytest.raises(TypeError):
            deserialize(pickle.dumps({"not": "a template"}))

    def test_cache_miss_then_hit(self):
        """Test the second compile of the same document comes from the cache."""
        cache = MemoryTemplateCache()
        first = compile_template("Hi {name}", cache=cache, name="greeting")
        assert len(cache) == 1
        assert f"greeting{checksum('Hi {name}')}" in cache

        second = compile_template("Hi {name}", cache=cache, name="greeting")
        assert len(cache) == 1
        assert isinstance(second, Template)
        assert second is not first

    def test_cached_copies_do_not_share_scope(self):
        """Test variables set on one cached copy stay out of the next."""
        cache = MemoryTemplateCache()
        first = compile_template("Hi {name}", cache=cache)
        first.set("name", "Ann")
        assert first.render() == "Hi Ann"

        second = compile_template("Hi {name}", cache=cache)
        assert second.render() == "Hi "

    def test_changed_document_is_recompiled(self):
        """Test a different document gets its own entry."""
        cache = MemoryTemplateCache()
        compile_template("one", cache=cache)
        compile_template("two", cache=cache)
        assert len(cache) == 2

        cache.clear()
        assert len(cache) == 0

    def test_load_template_with_cache(self, template_loader):
        """Test loading through the cache."""
        cache = MemoryTemplateCache()
        load_template("page.html", template_loader, cache)
        template = load_template("page.html", template_loader, cache)
        assert len(cache) == 1

        template.update(PAGE_VARIABLES)
        assert template.render() == PAGE_OUTPUT


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
