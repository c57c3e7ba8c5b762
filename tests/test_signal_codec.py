import pytest

from gesture_detector.exceptions import NonUTF8PayloadError, SignalError
from gesture_detector.gestures import ClassificationResult, GestureLabel
from gesture_detector.signal_codec import UNKNOWN_MARKER, decode_signal, encode_signal

POSITIVE_LABELS = [label for label in GestureLabel if label.is_positive]


def test_thumbs_up_payload():
    assert encode_signal(GestureLabel.THUMBS_UP) == "thumbs_up_detected"


def test_wire_names_are_snake_case():
    assert [encode_signal(label) for label in POSITIVE_LABELS] == [
        "victory_detected",
        "thumbs_up_detected",
        "thumbs_down_detected",
        "open_palm_detected",
        "fist_detected",
    ]


def test_none_is_never_encoded():
    with pytest.raises(ValueError):
        encode_signal(GestureLabel.NONE)


@pytest.mark.parametrize("label", POSITIVE_LABELS)
def test_decode_recovers_encoded_label(label):
    decoded = decode_signal(encode_signal(label).encode("utf-8"))
    assert decoded.gesture is label
    assert decoded.raw_label == label.value


def test_fist_detected_report():
    decoded = decode_signal(b"fist_detected")
    assert decoded.raw_label == "fist"
    assert decoded.gesture is GestureLabel.FIST
    assert decoded.decorated_label == "✊ Fist"


def test_decorated_label_is_title_case():
    assert decode_signal(b"thumbs_down_detected").decorated_label == "👎 Thumbs Down"


def test_text_without_suffix_is_used_as_is():
    decoded = decode_signal(b"open_palm")
    assert decoded.raw_label == "open_palm"
    assert decoded.gesture is GestureLabel.OPEN_PALM


def test_only_trailing_suffix_is_stripped():
    decoded = decode_signal(b"victory_detected_detected")
    assert decoded.raw_label == "victory_detected"
    assert decoded.gesture is None


def test_trailing_newline_is_ignored():
    assert decode_signal(b"victory_detected\n").gesture is GestureLabel.VICTORY


def test_unknown_name_uses_fallback_marker():
    decoded = decode_signal(b"wave_detected")
    assert decoded.raw_label == "wave"
    assert decoded.gesture is None
    assert decoded.decorated_label.startswith(UNKNOWN_MARKER)


def test_none_name_is_not_a_gesture():
    decoded = decode_signal(b"none_detected")
    assert decoded.gesture is None
    assert decoded.decorated_label.startswith(UNKNOWN_MARKER)


@pytest.mark.parametrize("payload", [b"\xff\xfe\xfd", b"fist_\xc3", b"\x80_detected"])
def test_non_utf8_payload_is_a_reported_error(payload):
    with pytest.raises(NonUTF8PayloadError) as excinfo:
        decode_signal(payload)
    assert isinstance(excinfo.value, SignalError)


def test_from_name_lookup():
    assert GestureLabel.from_name("thumbs_up") is GestureLabel.THUMBS_UP
    assert GestureLabel.from_name("wave") is None


@pytest.mark.parametrize("confidence", [-0.1, 1.01])
def test_classification_confidence_must_be_in_unit_range(confidence):
    with pytest.raises(ValueError):
        ClassificationResult(GestureLabel.FIST, confidence)


def test_none_result_has_zero_confidence():
    result = ClassificationResult.none("No hand detected")
    assert result.label is GestureLabel.NONE
    assert result.confidence == 0.0
    assert not result.label.is_positive
