"""
Configuration for the mood spoiler service.
"""
from pydantic import BaseModel
import logging
import os

KNOWN_BACKENDS = ("primary", "secondary", "simulated")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    HF_TOKEN: str = os.getenv("HF_TOKEN", "")
    REPLY_API_URL: str = os.getenv("REPLY_API_URL", "https://router.huggingface.co/v1/chat/completions")
    REPLY_MODEL: str = os.getenv("REPLY_MODEL", "zai-org/GLM-4.5:novita")
    REPLY_TIMEOUT: float = float(os.getenv("REPLY_TIMEOUT", "30"))

    BACKEND_INIT_TIMEOUT: float = float(os.getenv("BACKEND_INIT_TIMEOUT", "20"))
    DETECTOR_BACKENDS: str = os.getenv("DETECTOR_BACKENDS", "primary,secondary,simulated")
    SAMPLE_TIMEOUT: float = float(os.getenv("SAMPLE_TIMEOUT", "5"))
    ML_SAMPLE_INTERVAL: float = float(os.getenv("ML_SAMPLE_INTERVAL", "1"))
    SIM_SAMPLE_INTERVAL: float = float(os.getenv("SIM_SAMPLE_INTERVAL", "3"))

    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    CAMERA_WIDTH: int = int(os.getenv("CAMERA_WIDTH", "640"))
    CAMERA_HEIGHT: int = int(os.getenv("CAMERA_HEIGHT", "480"))

    DEEPFACE_DETECTOR: str = os.getenv("DEEPFACE_DETECTOR", "opencv")
    MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.5"))
    FER_MTCNN: bool = os.getenv("FER_MTCNN", "false").strip().lower() in ("1", "true", "yes")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize LOG_LEVEL to a stdlib level name
        level = (self.LOG_LEVEL or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            level = "INFO"
        object.__setattr__(self, "LOG_LEVEL", level)

        # Keep only known backend kinds, always in priority order
        wanted = {b.strip().lower() for b in (self.DETECTOR_BACKENDS or "").split(",")}
        kinds = [k for k in KNOWN_BACKENDS if k in wanted] or ["simulated"]
        object.__setattr__(self, "DETECTOR_BACKENDS", ",".join(kinds))

    @property
    def backend_kinds(self) -> list[str]:
        return self.DETECTOR_BACKENDS.split(",")
