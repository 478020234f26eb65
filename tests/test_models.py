
import pytest
from pydantic import ValidationError
from core.models import EmotionSample, ConversationMessage, DetectionStatus, ProbeResult

def test_models():
    s = EmotionSample(label="happy", confidence=0.8, timestamp=1.0, backend="primary")
    assert s.prompt_label == "happy"
    m = ConversationMessage(role="bot", text="hi", attached_emotion="happy")
    st = DetectionStatus(running=True, backend="primary", sample=s,
                         probe_log=[ProbeResult(backend="primary", ok=True)])
    assert st.sample.label == "happy"
    assert m.id and m.created_at > 0

def test_emotion_sample_is_immutable():
    s = EmotionSample(label="sad", confidence=0.5, timestamp=1.0)
    with pytest.raises(ValidationError):
        s.label = "happy"

def test_unmapped_label_is_unknown_for_prompt():
    s = EmotionSample(label="contempt", confidence=0.7, timestamp=1.0, canonical=False)
    assert s.label == "contempt"
    assert s.prompt_label == "unknown"

def test_confidence_bounds():
    with pytest.raises(ValidationError):
        EmotionSample(label="happy", confidence=1.5, timestamp=1.0)

def test_message_ids_unique():
    ids = {ConversationMessage(role="user", text="x").id for _ in range(50)}
    assert len(ids) == 50
