"""Tests for DefaultKeyBuilder."""

import pytest

from foliocache.infrastructure.key_builders.default import DefaultKeyBuilder


class TestDefaultKeyBuilder:
    """Tests for DefaultKeyBuilder."""

    @pytest.fixture
    def key_builder(self) -> DefaultKeyBuilder:
        """Create a key builder for testing."""
        return DefaultKeyBuilder(prefix="test")

    def test_build_key_without_arguments(self, key_builder: DefaultKeyBuilder) -> None:
        """Test a call without arguments gets a readable key."""
        key = key_builder.build(namespace="api", name="get_galleries")

        assert key == "test:api:get_galleries"

    def test_build_key_with_arguments(self, key_builder: DefaultKeyBuilder) -> None:
        """Test arguments add a hash part."""
        key = key_builder.build(
            namespace="api", name="get_gallery", kwargs={"slug": "yosemite"}
        )

        assert key.startswith("test:api:get_gallery:a:")

    def test_same_arguments_same_key(self, key_builder: DefaultKeyBuilder) -> None:
        """Test keys are deterministic regardless of kwarg order."""
        key1 = key_builder.build("api", "list", kwargs={"page": 1, "limit": 10})
        key2 = key_builder.build("api", "list", kwargs={"limit": 10, "page": 1})

        assert key1 == key2

    def test_different_arguments_different_key(self, key_builder: DefaultKeyBuilder) -> None:
        """Test different arguments produce different keys."""
        key1 = key_builder.build("api", "get_gallery", kwargs={"slug": "yosemite"})
        key2 = key_builder.build("api", "get_gallery", kwargs={"slug": "iceland"})

        assert key1 != key2

    def test_positional_and_keyword_differ(self, key_builder: DefaultKeyBuilder) -> None:
        """Test positional args and kwargs are hashed separately."""
        key1 = key_builder.build("api", "f", args=("x",))
        key2 = key_builder.build("api", "f", kwargs={"0": "x"})

        assert key1 != key2

    def test_empty_namespace_uses_default(self, key_builder: DefaultKeyBuilder) -> None:
        """Test an empty namespace falls back to 'default'."""
        assert key_builder.build("", "f") == "test:default:f"

    def test_default_prefix(self) -> None:
        """Test the default prefix."""
        assert DefaultKeyBuilder().build("api", "f").startswith("foliocache:")


class TestRequestKey:
    """Tests for client request keys."""

    def test_request_key_includes_method_url_and_body(self) -> None:
        """Test the key is METHOD:url:body."""
        key = DefaultKeyBuilder().build_request_key("get", "/api/galleries", "")

        assert key == "GET:/api/galleries:"

    def test_request_key_body_distinguishes(self) -> None:
        """Test request bodies are part of the key."""
        builder = DefaultKeyBuilder()

        assert builder.build_request_key("POST", "/api/search", '{"q":"a"}') != (
            builder.build_request_key("POST", "/api/search", '{"q":"b"}')
        )
