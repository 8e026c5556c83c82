"""Tests for structural batch validation."""

import copy

import pytest

from competitor_timeline.ingestion.validator import validate_batch, validate_envelope


class TestValidateBatch:
    """validate_batch reports every violation, in document order."""

    def test_valid_batch(self, sample_payload):
        assert validate_batch(sample_payload) == (True, [])

    def test_empty_posts_is_valid(self, sample_payload):
        sample_payload["posts"] = []
        assert validate_batch(sample_payload) == (True, [])

    @pytest.mark.parametrize("payload", [None, [], "batch", 42])
    def test_non_object(self, payload):
        assert validate_batch(payload) == (False, ["Batch must be a JSON object"])

    def test_empty_object_lists_every_top_level_field(self):
        valid, errors = validate_batch({})

        assert valid is False
        assert errors == [
            "batchId is required",
            "scrapedAt is required",
            "source is required",
            "posts is required",
        ]

    def test_blank_strings_count_as_missing(self, sample_payload):
        sample_payload["batchId"] = "   "
        sample_payload["source"]["url"] = ""

        _, errors = validate_batch(sample_payload)

        assert errors == ["batchId is required", "source.url is required"]

    def test_source_must_be_object(self, sample_payload):
        sample_payload["source"] = "instagram"

        _, errors = validate_batch(sample_payload)

        assert errors == ["source must be an object"]

    def test_unknown_platform(self, sample_payload):
        sample_payload["source"]["platform"] = "myspace"
        del sample_payload["source"]["handle"]

        _, errors = validate_batch(sample_payload)

        assert errors[0] == "source.handle is required"
        assert errors[1].startswith("source.platform: Unknown platform 'myspace'")
        assert len(errors) == 2

    def test_platform_is_case_insensitive(self, sample_payload):
        sample_payload["source"]["platform"] = "Instagram"
        assert validate_batch(sample_payload) == (True, [])

    def test_posts_must_be_list(self, sample_payload):
        sample_payload["posts"] = {"id": "x"}

        _, errors = validate_batch(sample_payload)

        assert errors == ["posts must be a list"]

    def test_post_errors_are_indexed(self, sample_payload):
        good = copy.deepcopy(sample_payload["posts"][0])
        sample_payload["posts"] = ["not-a-post", {"id": "1"}, good]

        _, errors = validate_batch(sample_payload)

        assert errors == [
            "posts[0] must be an object",
            "posts[1].url is required",
            "posts[1].content is required",
            "posts[1].publishedAt is required",
            "posts[1].engagement is required",
        ]

    def test_empty_content_allowed_but_blank_id_not(self, sample_payload):
        post = sample_payload["posts"][0]
        post["content"] = ""
        post["id"] = "  "

        _, errors = validate_batch(sample_payload)

        assert errors == ["posts[0].id is required"]

    def test_engagement_must_be_object(self, sample_payload):
        sample_payload["posts"][1]["engagement"] = 17

        _, errors = validate_batch(sample_payload)

        assert errors == ["posts[1].engagement must be an object"]

    def test_errors_accumulate_across_sections(self, sample_payload):
        del sample_payload["scrapedAt"]
        sample_payload["source"]["platform"] = None
        del sample_payload["posts"][0]["url"]

        valid, errors = validate_batch(sample_payload)

        assert valid is False
        assert errors == [
            "scrapedAt is required",
            "source.platform is required",
            "posts[0].url is required",
        ]


class TestValidateEnvelope:
    """validate_envelope leaves post-level defects to the batch processor."""

    def test_ignores_post_fields(self, sample_payload):
        del sample_payload["posts"][0]["url"]
        sample_payload["posts"].append("not-a-post")

        assert validate_envelope(sample_payload) == (True, [])

    def test_reports_envelope_errors(self, sample_payload):
        del sample_payload["batchId"]
        sample_payload["source"]["platform"] = "myspace"
        del sample_payload["posts"][0]["url"]

        valid, errors = validate_envelope(sample_payload)

        assert valid is False
        assert errors[0] == "batchId is required"
        assert errors[1].startswith("source.platform: ")
        assert len(errors) == 2

    def test_posts_must_be_list(self, sample_payload):
        sample_payload["posts"] = "C1aaa"

        assert validate_envelope(sample_payload) == (False, ["posts must be a list"])
