"""
存储资源命名测试：解析、校验与尽力修正
"""
import pytest

from media_ingest.constants import AssetType, ContentSection
from media_ingest.errors import NamingError, ValidationError
from media_ingest.models import NamingContext
from media_ingest.naming import (
    get_blob_container_name,
    get_queue_name,
    get_table_name,
    is_valid_container_name,
    is_valid_queue_name,
    is_valid_table_name,
    parse_container_name,
    sanitize_container_name,
    sanitize_queue_name,
    sanitize_table_name,
    validate_container_name,
    validate_queue_name,
    validate_table_name,
)

AWKWARD_INPUTS = [
    None,
    "",
    "   ",
    "a",
    "--",
    "My Container!!",
    "UPPER_case.name",
    "a--b---c",
    "-leading-and-trailing-",
    "123",
    "9lives",
    "containers",
    "Containers",
    "tables",
    "queues",
    "x" * 100,
    "a-" * 40,
    "日本語のなまえ",
    "blog images/2024",
]


class TestResolver:
    def test_container_name_with_asset_type(self):
        assert get_blob_container_name(ContentSection.BLOG, AssetType.IMAGES) == "blog-images"
        assert get_blob_container_name(ContentSection.MUSIC, AssetType.AUDIO) == "music-audio"

    def test_container_name_without_asset_type(self):
        assert get_blob_container_name(ContentSection.DOCUMENTS) == "documents"

    def test_mock_container_name(self):
        assert get_blob_container_name(ContentSection.BLOG, AssetType.IMAGES, is_mock_storage=True) == "mock-blog-images"

    def test_table_names(self):
        assert get_table_name(ContentSection.BLOG, AssetType.IMAGES) == "blogimagesmetadata"
        assert get_table_name(ContentSection.BLOG, AssetType.COMMENTS) == "blogcomments"
        assert get_table_name(ContentSection.TAGS) == "tags"
        assert get_table_name(ContentSection.BLOG, AssetType.IMAGES, is_mock_storage=True) == "mockblogimagesmetadata"

    def test_table_name_without_metadata_table(self):
        with pytest.raises(NamingError) as exc_info:
            get_table_name(ContentSection.BLOG, AssetType.ARCHIVES)
        assert exc_info.value.rule == "asset_type"

    def test_queue_names(self):
        assert get_queue_name(ContentSection.BLOG, AssetType.IMAGES) == "blog-images-queue"
        assert get_queue_name(ContentSection.EVENTS) == "events-queue"
        assert get_queue_name(ContentSection.BLOG, AssetType.VIDEO, is_mock_storage=True) == "mock-blog-video-queue"

    @pytest.mark.parametrize("section", list(ContentSection))
    @pytest.mark.parametrize("asset_type", [None, *AssetType])
    def test_resolved_names_are_valid(self, section, asset_type):
        for mock in (False, True):
            assert is_valid_container_name(get_blob_container_name(section, asset_type, is_mock_storage=mock))
            assert is_valid_queue_name(get_queue_name(section, asset_type, is_mock_storage=mock))

    @pytest.mark.parametrize("section", list(ContentSection))
    @pytest.mark.parametrize("asset_type", [None, *AssetType])
    def test_parse_container_name_inverts_resolution(self, section, asset_type):
        for mock in (False, True):
            name = get_blob_container_name(section, asset_type, is_mock_storage=mock)
            assert parse_container_name(name) == NamingContext(section=section, asset_type=asset_type)

    def test_parse_unknown_container(self):
        with pytest.raises(NamingError) as exc_info:
            parse_container_name("not-a-known-container")
        assert exc_info.value.rule == "unknown_container"


class TestNamingContext:
    def test_parse_is_case_insensitive(self):
        ctx = NamingContext.parse("Blog", "IMAGES")
        assert ctx.section == ContentSection.BLOG
        assert ctx.asset_type == AssetType.IMAGES

    @pytest.mark.parametrize("asset_type", [None, "", "none", "None"])
    def test_parse_without_asset_type(self, asset_type):
        assert NamingContext.parse("documents", asset_type).asset_type is None

    def test_parse_unknown_section(self):
        with pytest.raises(ValidationError):
            NamingContext.parse("podcasts", "images")


class TestValidators:
    @pytest.mark.parametrize("name", ["abc", "blog-images", "a1-b2-c3", "x" * 63])
    def test_valid_container_names(self, name):
        validate_container_name(name)

    @pytest.mark.parametrize(
        "name,rule",
        [
            ("", "empty"),
            (None, "empty"),
            ("ab", "length"),
            ("x" * 64, "length"),
            ("Blog", "charset"),
            ("blog--images", "charset"),
            ("-blog", "charset"),
            ("blog-", "charset"),
            ("blog_images", "charset"),
            ("containers", "reserved"),
        ],
    )
    def test_invalid_container_names(self, name, rule):
        with pytest.raises(NamingError) as exc_info:
            validate_container_name(name)
        assert exc_info.value.rule == rule

    @pytest.mark.parametrize("name", ["abc", "BlogImagesMetadata", "mockblog", "A" * 63])
    def test_valid_table_names(self, name):
        validate_table_name(name)

    @pytest.mark.parametrize(
        "name,rule",
        [
            ("", "empty"),
            ("ab", "length"),
            ("1table", "charset"),
            ("blog-table", "charset"),
            ("Tables", "reserved"),
        ],
    )
    def test_invalid_table_names(self, name, rule):
        with pytest.raises(NamingError) as exc_info:
            validate_table_name(name)
        assert exc_info.value.rule == rule

    @pytest.mark.parametrize(
        "name,rule",
        [
            ("  ", "empty"),
            ("q", "length"),
            ("Queue", "charset"),
            ("-queue", "charset"),
            ("blog--queue", "consecutive_hyphens"),
            ("queues", "reserved"),
        ],
    )
    def test_invalid_queue_names(self, name, rule):
        with pytest.raises(NamingError) as exc_info:
            validate_queue_name(name)
        assert exc_info.value.rule == rule

    def test_naming_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_container_name("UPPER")

    def test_is_valid_variants(self):
        assert is_valid_container_name("blog-images")
        assert not is_valid_container_name("Blog Images")
        assert is_valid_table_name("blogimages")
        assert not is_valid_table_name("tables")
        assert is_valid_queue_name("blog-queue")
        assert not is_valid_queue_name("blog--queue")


class TestSanitizers:
    @pytest.mark.parametrize("name", AWKWARD_INPUTS)
    def test_sanitized_container_name_always_validates(self, name):
        validate_container_name(sanitize_container_name(name))

    @pytest.mark.parametrize("name", AWKWARD_INPUTS)
    def test_sanitized_table_name_always_validates(self, name):
        validate_table_name(sanitize_table_name(name))

    @pytest.mark.parametrize("name", AWKWARD_INPUTS)
    def test_sanitized_queue_name_always_validates(self, name):
        validate_queue_name(sanitize_queue_name(name))

    def test_sanitize_examples(self):
        assert sanitize_container_name("My Container!!") == "mycontainer"
        assert sanitize_container_name("a--b---c") == "a-b-c"
        assert sanitize_container_name("") == "container"
        assert sanitize_container_name("containers") == "containers-data"
        assert sanitize_table_name("9lives") == "Table9lives"
        assert sanitize_table_name("ab") == "ab0"
        assert sanitize_table_name("tables") == "tablesData"
        assert sanitize_queue_name("") == "queue"

    def test_sanitize_keeps_valid_names(self):
        assert sanitize_container_name("blog-images") == "blog-images"
        assert sanitize_table_name("blogimagesmetadata") == "blogimagesmetadata"
        assert sanitize_queue_name("blog-images-queue") == "blog-images-queue"

    def test_sanitize_truncates(self):
        assert len(sanitize_container_name("x" * 100)) == 63
        assert len(sanitize_table_name("T" * 100)) == 63
