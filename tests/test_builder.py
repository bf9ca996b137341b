"""Tests for the message builder."""

import io
import json

import pytest

from grid_mailer.builder import HIDDEN_RECIPIENTS_HEADER, MessageBuilder
from grid_mailer.exceptions import (
    InvalidAddressError,
    InvalidInputError,
    InvalidUnsubscribeTemplateError,
    MissingBodyError,
    MissingRecipientsError,
    MissingSenderError,
    MissingSubjectError,
    ValidationFailedError,
)
from grid_mailer.models import Address, Attachment


class TestBuildValidation:
    """Tests for build-time validation."""

    def test_valid_message(self, builder):
        """Test valid message."""
        message = builder.build()

        assert message.from_address == Address("noreply@example.com", "Billing")
        assert message.to == (Address("alice@example.com"),)
        assert message.subject == "Invoice"
        assert message.html_body == "<h1>Invoice</h1>"

    def test_empty_builder_reports_every_rule(self):
        """Test empty builder reports every rule."""
        with pytest.raises(ValidationFailedError) as exc_info:
            MessageBuilder.create().build()

        assert [type(e) for e in exc_info.value.errors] == [
            MissingBodyError,
            MissingRecipientsError,
            MissingSenderError,
            MissingSubjectError,
        ]

    def test_missing_subject_and_recipients_yields_two_errors(self):
        """Test missing subject and recipients yields two errors."""
        builder = MessageBuilder.create().from_("noreply@example.com").text_body("hi")

        with pytest.raises(ValidationFailedError) as exc_info:
            builder.build()

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert isinstance(errors[0], MissingRecipientsError)
        assert isinstance(errors[1], MissingSubjectError)
        assert "does not have any recipients" in str(exc_info.value)
        assert "does not have a subject" in str(exc_info.value)

    def test_empty_html_body_is_missing_body(self, builder):
        """Test empty html body is missing body."""
        builder.html_body("")

        with pytest.raises(ValidationFailedError) as exc_info:
            builder.build()

        assert [type(e) for e in exc_info.value.errors] == [MissingBodyError]

    def test_text_body_alone_is_enough(self, builder):
        """Test text body alone is enough."""
        message = builder.html_body(None).text_body("Invoice").build()
        assert message.text_body == "Invoice"

    def test_template_engine_makes_body_optional(self, builder):
        """Test template engine makes body optional."""
        message = builder.html_body(None).enable_template_engine("d-123").build()
        assert message.template_id == "d-123"

    def test_disable_template_engine(self, builder):
        """Test disable template engine."""
        builder.html_body(None).enable_template_engine("d-123").disable_template_engine()

        with pytest.raises(ValidationFailedError):
            builder.build()


class TestRecipients:
    """Tests for address setters."""

    def test_to_is_cumulative(self):
        """Test to is cumulative."""
        message = (
            MessageBuilder.create()
            .from_("noreply@example.com")
            .to("a@example.com")
            .to("b@example.com")
            .subject("Hi")
            .text_body("Hi")
            .build()
        )

        assert [a.email for a in message.to] == ["a@example.com", "b@example.com"]

    def test_to_accepts_mixed_sequence(self, builder):
        """Test to accepts mixed sequence."""
        message = builder.to(
            ["Bob <bob@example.com>", Address("carol@example.com"), ("dan@example.com", "Dan")]
        ).build()

        assert [a.formatted() for a in message.to] == [
            "alice@example.com",
            "Bob <bob@example.com>",
            "carol@example.com",
            "Dan <dan@example.com>",
        ]

    def test_to_with_display_name(self, builder):
        """Test to with display name."""
        message = builder.to("bob@example.com", "Bob").build()
        assert message.to[-1] == Address("bob@example.com", "Bob")

    def test_cc_and_bcc_append(self, builder):
        """Test cc and bcc append."""
        message = (
            builder.cc("c1@example.com")
            .cc(["c2@example.com", "c3@example.com"])
            .bcc("b1@example.com", "Auditor")
            .bcc(["b2@example.com"])
            .build()
        )

        assert [a.email for a in message.cc] == [
            "c1@example.com",
            "c2@example.com",
            "c3@example.com",
        ]
        assert message.bcc == (
            Address("b1@example.com", "Auditor"),
            Address("b2@example.com"),
        )

    def test_from_replaces(self, builder):
        """Test from replaces."""
        message = builder.from_("other@example.com").build()
        assert message.from_address == Address("other@example.com")

    def test_invalid_address_raises_immediately(self, builder):
        """Test invalid address raises immediately."""
        with pytest.raises(InvalidAddressError):
            builder.to("not-an-address")

    def test_display_name_rejected_for_sequences(self, builder):
        """Test display name rejected for sequences."""
        with pytest.raises(ValueError):
            builder.to(["a@example.com", "b@example.com"], "Team")


class TestHideRecipients:
    """Tests for the hide-recipients transform."""

    def test_visible_to_collapses_to_sender(self):
        """Test visible to collapses to sender."""
        message = (
            MessageBuilder.create()
            .from_("noreply@example.com", "Billing")
            .to(["a@example.com", "Bob <b@example.com>", "c@example.com"])
            .subject("News")
            .html_body("<p>News</p>")
            .hide_recipients()
            .build()
        )

        assert message.to == (Address("noreply@example.com", "Billing"),)
        assert message.hide_recipients is True
        assert [a.email for a in message.hidden_recipients] == [
            "a@example.com",
            "b@example.com",
            "c@example.com",
        ]
        header = json.loads(message.headers[HIDDEN_RECIPIENTS_HEADER])
        assert header["to"] == ["a@example.com", "Bob <b@example.com>", "c@example.com"]

    def test_header_carries_substitution_lists(self, builder):
        """Test header carries substitution lists."""
        message = (
            builder.to("bob@example.com")
            .substitute("-name-", ["Alice", "Bob"])
            .hide_recipients()
            .build()
        )

        header = json.loads(message.headers[HIDDEN_RECIPIENTS_HEADER])
        assert header["sub"] == {"-name-": ["Alice", "Bob"]}

    def test_builder_state_untouched(self, builder):
        """Test builder state untouched."""
        builder.hide_recipients()
        first = builder.build()
        second = builder.build()

        assert first.hidden_recipients == second.hidden_recipients
        assert second.hidden_recipients == (Address("alice@example.com"),)

    def test_not_hidden_by_default(self, builder):
        """Test not hidden by default."""
        message = builder.build()

        assert HIDDEN_RECIPIENTS_HEADER not in message.headers
        assert message.hidden_recipients == ()


class TestUnsubscribe:
    """Tests for the unsubscribe footer setter."""

    def test_enable_unsubscribe(self, builder):
        """Test enable unsubscribe."""
        message = builder.enable_unsubscribe(
            "Unsubscribe: <% %>", "<a><% Unsubscribe here %></a>"
        ).build()

        assert message.unsubscribe.enabled is True
        assert message.unsubscribe.text == "Unsubscribe: <% %>"

    def test_text_without_placeholder_fails(self, builder):
        """Test text without placeholder fails."""
        with pytest.raises(InvalidUnsubscribeTemplateError) as exc_info:
            builder.enable_unsubscribe("no placeholder", "<% tag %>")
        assert exc_info.value.part == "text"

    def test_html_without_token_fails(self, builder):
        """Test html without token fails."""
        with pytest.raises(InvalidUnsubscribeTemplateError) as exc_info:
            builder.enable_unsubscribe("<% %>", "no placeholder")
        assert exc_info.value.part == "html"

    def test_substitution_tag_variant(self, builder):
        """Test substitution tag variant."""
        message = builder.enable_unsubscribe_tag("[unsubscribe]").build()
        assert message.unsubscribe.substitution_tag == "[unsubscribe]"

    def test_disable(self, builder):
        """Test disable."""
        message = builder.disable_unsubscribe().build()
        assert message.unsubscribe.enabled is False


class TestAttachments:
    """Tests for attachments and embedded images."""

    def test_attach_bytes(self, builder):
        """Test attach bytes."""
        message = builder.attach_file(b"a,b\n1,2\n", "data.csv").build()

        assert message.attachments == (Attachment("data.csv", b"a,b\n1,2\n"),)
        assert message.attachments[0].content_type == "text/csv"

    def test_attach_path_uses_file_name(self, builder, tmp_path):
        """Test attach path uses file name."""
        path = tmp_path / "report.txt"
        path.write_bytes(b"report")

        message = builder.attach_file(str(path)).build()

        assert message.attachments[0].name == "report.txt"
        assert message.attachments[0].content == b"report"

    def test_attach_stream(self, builder):
        """Test attach stream."""
        message = builder.attach_file(io.BytesIO(b"data"), "blob.bin").build()
        assert message.attachments[0].content == b"data"

    def test_attach_missing_path(self, builder, tmp_path):
        """Test attach missing path."""
        with pytest.raises(InvalidInputError):
            builder.attach_file(str(tmp_path / "missing.pdf"))

    def test_attach_bytes_without_name(self, builder):
        """Test attach bytes without name."""
        with pytest.raises(InvalidInputError):
            builder.attach_file(b"data")

    def test_attach_files(self, builder, tmp_path):
        """Test attach files."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"a")

        message = builder.attach_files([path, (b"b", "b.txt")]).build()

        assert [a.name for a in message.attachments] == ["a.txt", "b.txt"]

    def test_embedded_image_is_also_attachment(self, builder):
        """Test embedded image is also attachment."""
        message = builder.embed_image(b"\x89PNG", "logo.png", "logo").build()

        assert len(message.inline_images) == 1
        assert message.inline_images[0].content_id == "logo"
        assert len(message.attachments) == 1
        attachment = message.attachments[0]
        assert attachment.content_id == "logo"
        assert attachment.is_inline is True
        assert attachment.content_type == "image/png"

    def test_embed_content_id_defaults_to_name(self, builder):
        """Test embed content id defaults to name."""
        message = builder.embed_images([(b"\x89PNG", "logo.png")]).build()
        assert message.inline_images[0].content_id == "logo.png"


class TestMetadata:
    """Tests for headers, substitutions, unique args and categories."""

    def test_headers_last_write_wins(self, builder):
        """Test headers last write wins."""
        message = (
            builder.add_header("X-Priority", "1")
            .add_headers({"X-Priority": "3", "X-Campaign": "spring"})
            .build()
        )

        assert dict(message.headers) == {"X-Priority": "3", "X-Campaign": "spring"}

    def test_substitute_appends(self, builder):
        """Test substitute appends."""
        message = (
            builder.substitute("-name-", "Alice").substitute("-name-", ["Bob", "Carol"]).build()
        )
        assert message.substitutions["-name-"] == ("Alice", "Bob", "Carol")

    def test_unique_args(self, builder):
        """Test unique args."""
        message = (
            builder.include_unique_arg("customer", "42")
            .include_unique_args({"invoice": "2024-001"})
            .build()
        )
        assert dict(message.unique_args) == {"customer": "42", "invoice": "2024-001"}

    def test_categories_are_unique(self, builder):
        """Test categories are unique."""
        message = builder.set_category("billing").set_categories(["billing", "monthly"]).build()
        assert message.categories == ("billing", "monthly")

    def test_model_mappings_are_read_only(self, builder):
        """Test model mappings are read only."""
        message = builder.add_header("X-Priority", "1").build()

        with pytest.raises(TypeError):
            message.headers["X-Priority"] = "2"


class TestTracking:
    """Tests for tracking and filter toggles."""

    def test_defaults_leave_provider_settings(self, builder):
        """Test defaults leave provider settings."""
        tracking = builder.build().tracking

        assert tracking.open_tracking.enabled is None
        assert tracking.click_tracking.enabled is None
        assert tracking.spam_check.enabled is None
        assert tracking.google_analytics.enabled is None

    def test_enable_flags(self, builder):
        """Test enable flags."""
        message = (
            builder.enable_open_tracking()
            .enable_click_tracking(include_plain_text=True)
            .enable_spam_check(score=3, url="https://example.com/spam")
            .enable_google_analytics("newsletter", "email", "invoice", campaign="spring")
            .build()
        )
        tracking = message.tracking

        assert tracking.open_tracking.enabled is True
        assert tracking.click_tracking.include_plain_text is True
        assert tracking.spam_check.score == 3
        assert tracking.spam_check.url == "https://example.com/spam"
        assert tracking.google_analytics.source == "newsletter"
        assert tracking.google_analytics.campaign == "spring"
        assert tracking.google_analytics.content is None

    def test_disable_overrides_enable(self, builder):
        """Test disable overrides enable."""
        message = builder.enable_click_tracking(True).disable_click_tracking().build()

        assert message.tracking.click_tracking.enabled is False
        assert message.tracking.click_tracking.include_plain_text is False

    def test_filters(self, builder):
        """Test filters."""
        message = (
            builder.enable_footer(text="-- footer", html="<p>footer</p>")
            .enable_bcc("archive@example.com")
            .enable_bypass_list_management()
            .build()
        )

        assert message.footer.text == "-- footer"
        assert message.bcc_filter.email == "archive@example.com"
        assert message.bypass_list_management.enabled is True
