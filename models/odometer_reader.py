"""Odometer reading from photos via an OpenAI-compatible vision API."""

import base64
import io
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import requests
from PIL import Image

logger = logging.getLogger(__name__)

ODO_PROMPT = "Read the odometer number from this bike photo. Return only the number."

# Photos are scaled to this width and re-encoded as JPEG before the API call.
IMAGE_WIDTH = 512
JPEG_QUALITY = 70

_NUMBER = re.compile(r"\d[\d,. ]*")


class OdometerReadError(Exception):
    """The odometer value could not be read from the photo."""


def prepare_image(image: bytes) -> bytes:
    """Scale a photo to IMAGE_WIDTH (aspect kept) and encode it as JPEG."""
    try:
        with Image.open(io.BytesIO(image)) as img:
            height = max(1, round(img.height * IMAGE_WIDTH / img.width))
            resized = img.convert("RGB").resize((IMAGE_WIDTH, height), Image.LANCZOS)
    except (OSError, ValueError) as e:
        raise OdometerReadError(f"Unreadable image: {e}") from e
    out = io.BytesIO()
    resized.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()


def parse_reading(text: str) -> int:
    """
    Turn a raw vision answer into kilometers.

    Commas and spaces are thousands separators. Dots are too when every group
    after them has three digits ("12.345"); otherwise the dot is a decimal
    point and the fraction is dropped ("12345.6"). Anything without digits is
    a failed read.
    """
    match = _NUMBER.search(text or "")
    if not match:
        raise OdometerReadError(f"No odometer value in response: {text!r}")
    number = re.sub(r"[, ]", "", match.group(0)).strip(".")
    whole, *groups = number.split(".")
    if groups and all(len(g) == 3 for g in groups):
        return int(whole + "".join(groups))
    return int(whole)


class OdometerReader(ABC):
    @abstractmethod
    def detect(self, image: bytes, content_type: str = "image/jpeg") -> str:
        """Return the raw odometer text read from the image."""


class VisionOdometerReader(OdometerReader):
    """Asks a chat-completions vision model to read the odometer."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def detect(self, image: bytes, content_type: str = "image/jpeg") -> str:
        if not self.api_key:
            raise OdometerReadError("No vision API key configured")

        encoded = base64.b64encode(prepare_image(image)).decode("ascii")
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ODO_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{encoded}"},
                        },
                    ],
                }
            ],
            "max_tokens": 10,
        }

        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.RequestException as e:
            logger.error("Vision API request failed: %s", e)
            raise OdometerReadError("Failed to detect ODO") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected vision API response: %s", e)
            raise OdometerReadError("Failed to detect ODO") from e

        odo = (content or "").strip()
        logger.info("Vision API read odometer as %r", odo)
        return odo
