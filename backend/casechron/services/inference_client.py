"""
Single-shot inference against AWS Bedrock (Claude).

One call, one response: no retries and no streaming. Any failure surfaces as
InferenceError so the caller can treat the whole analysis request as failed.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from casechron.core.config import settings
from casechron.core.logger import logger


class InferenceError(RuntimeError):
    """Terminal failure of the external reasoning service."""


@dataclass
class ImageInput:
    data: bytes
    media_type: str


@dataclass
class InferenceRequest:
    prompt: str
    max_tokens: int
    temperature: float = 0.0
    images: list[ImageInput] = field(default_factory=list)


class InferenceClient:
    def __init__(self, model_id: Optional[str] = None, client=None) -> None:
        self.model_id = (model_id or settings.BEDROCK_MODEL_ID).strip()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "bedrock-runtime",
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._client

    def _build_body(self, request: InferenceRequest) -> str:
        if request.images:
            content: list[dict] | str = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image.media_type,
                        "data": base64.b64encode(image.data).decode("ascii"),
                    },
                }
                for image in request.images
            ]
            content.append({"type": "text", "text": request.prompt})
        else:
            content = request.prompt

        return json.dumps(
            {
                "anthropic_version": "bedrock-2023-05-31",
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
                "messages": [{"role": "user", "content": content}],
            }
        )

    def complete(self, request: InferenceRequest) -> str:
        """
        Send *request* and return the concatenated text blocks of the reply.
        """
        logger.info(
            "Invoking Bedrock model=%s prompt_chars=%d images=%d max_tokens=%d",
            self.model_id,
            len(request.prompt),
            len(request.images),
            request.max_tokens,
        )
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=self._build_body(request),
            )
            result = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as exc:
            logger.error("Bedrock invocation failed: %s", exc)
            raise InferenceError(str(exc)) from exc
        except (ValueError, KeyError, AttributeError, TypeError) as exc:
            logger.error("Bedrock returned an unreadable body: %s", exc)
            raise InferenceError(f"Unreadable response body: {exc}") from exc

        if not isinstance(result, dict):
            logger.error("Bedrock returned a %s body instead of an object", type(result).__name__)
            raise InferenceError("Unreadable response body: expected a JSON object")

        blocks = result.get("content")
        text_parts: list[str] = []
        for block in blocks if isinstance(blocks, list) else []:
            if isinstance(block, dict) and block.get("type") == "text":
                text_parts.append(str(block.get("text") or ""))
        text = "".join(text_parts)

        usage = result.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        logger.info(
            "Bedrock response received: chars=%d input_tokens=%s output_tokens=%s stop_reason=%s",
            len(text),
            usage.get("input_tokens"),
            usage.get("output_tokens"),
            result.get("stop_reason"),
        )
        return text
