"""
Tests for the typed failure taxonomy.
"""

from viralscript.core.exceptions import (
    ImageGenerationRefused,
    MalformedResponse,
    MissingCredential,
    OperationCancelled,
    PersonaNotFound,
    TransportError,
    ViralScriptError,
)


class TestTransportError:
    def test_keeps_status_and_message(self):
        err = TransportError(503, "The model is overloaded.")
        assert err.status == 503
        assert err.message == "The model is overloaded."
        assert str(err) == "[503] The model is overloaded."

    def test_operation_unset_by_default(self):
        assert TransportError(500, "boom").operation is None


class TestMalformedResponse:
    def test_preview_is_truncated(self):
        raw = "x" * 500
        err = MalformedResponse(raw)
        assert err.raw_length == 500
        assert err.preview == "x" * 200
        assert err.details["raw_length"] == 500

    def test_handles_empty_text(self):
        err = MalformedResponse("")
        assert err.raw_length == 0
        assert err.preview == ""


class TestHierarchy:
    def test_all_failures_share_base(self):
        for err in (
            MissingCredential(),
            TransportError(429, "quota"),
            MalformedResponse("{"),
            ImageGenerationRefused("I can't draw that"),
            PersonaNotFound("nobody"),
            OperationCancelled(2),
        ):
            assert isinstance(err, ViralScriptError)

    def test_refusal_keeps_model_text(self):
        err = ImageGenerationRefused("I can't draw that")
        assert err.text == "I can't draw that"
        assert "refused" in err.message
        assert "I can't draw that" in str(err)

    def test_refusal_without_text(self):
        assert str(ImageGenerationRefused()) == "No image generated. The model may have refused the request."

    def test_cancelled_reports_attempts(self):
        assert OperationCancelled(2).attempts_made == 2
