"""
Tests for the canonical Item.
"""

from datetime import datetime, timezone

from feedcel.item import ITEM_FIELDS, Item


class TestItem:
    """Test derived fields and activation."""

    def test_tags_join_categories(self):
        item = Item(categories=["rust", "go"])
        assert item.tags == "rust,go"

    def test_tags_absent_without_categories(self):
        assert Item().tags is None

    def test_content_length_follows_content(self):
        assert Item(content="hello").content_length == 5
        assert Item(content="").content_length == 0
        assert Item().content_length is None

    def test_activation_omits_absent_fields(self):
        activation = Item(url="https://x", title="T").to_activation()
        assert activation == {"URL": "https://x", "Title": "T", "Categories": []}

    def test_activation_keeps_present_empty_values(self):
        activation = Item(title="", author="", content="").to_activation()
        assert activation["Title"] == ""
        assert activation["Author"] == ""
        assert activation["Content"] == ""
        assert activation["ContentLength"] == 0

    def test_url_always_present(self):
        assert "URL" in Item().to_activation()
        assert Item().to_activation()["URL"] == ""

    def test_activation_covers_declared_fields(self):
        published = datetime(2025, 1, 1, tzinfo=timezone.utc)
        item = Item(url="u", title="t", author="a", categories=("c",), content="x",
                    published=published, updated=published)
        assert set(item.to_activation()) == {name for name, _ in ITEM_FIELDS}

    def test_categories_stored_as_tuple(self):
        item = Item(categories=["a"])
        assert item.categories == ("a",)
        assert hash(item)

    def test_label(self):
        assert Item(title="T", url="u").label() == "T"
        assert Item(url="u").label() == "u"
        assert Item().label() == "<untitled>"

    def test_to_dict(self):
        published = datetime(2025, 1, 1, tzinfo=timezone.utc)
        data = Item(title="T", published=published).to_dict()
        assert data["published"] == "2025-01-01T00:00:00+00:00"
        assert data["updated"] is None
        assert data["content_length"] is None
