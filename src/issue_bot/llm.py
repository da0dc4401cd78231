"""
Bedrock Claude streaming wrapper.

Uses Anthropic Messages API on Bedrock (anthropic_version=bedrock-2023-05-31).
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Iterator
from typing import Any

from .errors import CompletionError
from .images import ImageData
from .models import GeneratedIssue

JSON_PREFILL = "{"

ISSUE_TEMPLATES: dict[str, dict[str, Any]] = {
    "BUG": {
        "body": (
            "## Description\n\n{{concise_summary}}\n\n"
            "## Steps to Reproduce\n1. {{step_1}}\n2. {{step_2}}\n3. {{step_3}}\n\n"
            "## Expected Behavior\n{{expected}}\n\n"
            "## Actual Behavior\n{{actual}}\n\n"
            "**Environment:**\n- OS: {{OS}}\n- Version: {{version}}"
        ),
        "labels": ["bug"],
    },
    "FEATURE": {
        "body": (
            "## Problem Statement\n{{problem_description -- make this brief and concise}}\n\n"
            "## Proposed Solution\n{{solution_details}}\n\n"
            "## Alternatives Considered\n{{alternatives}}\n\n"
            "## Additional Context\n{{context}}"
        ),
        "labels": ["enhancement"],
    },
    "ENHANCEMENT": {
        "body": (
            "## Current Behavior\n{{current_state}}\n\n"
            "## Proposed Improvement\n{{improvement_details}}\n\n"
            "## Expected Benefits\n{{benefits}}\n\n"
            "## Implementation Notes\n{{notes}}"
        ),
        "labels": ["enhancement"],
    },
    "PERFORMANCE": {
        "body": (
            "## Affected Component\n{{component}}\n\n"
            "## Current Performance\n{{metrics}}\n\n"
            "## Performance Targets\n{{targets}}\n\n"
            "## Benchmark Results\n{{results}}\n\n"
            "## Optimization Strategies\n{{strategies}}"
        ),
        "labels": ["performance"],
    },
}


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


def build_system_prompt() -> str:
    schema = GeneratedIssue.model_json_schema()
    return (
        "Analyze the input to identify multiple distinct issues. "
        'Always return a JSON object {"issues": [...]} and nothing else. For every issue:\n'
        "1. Separate technical concerns into individual issues\n"
        "2. Maintain atomicity (each issue solves one problem)\n"
        "3. Follow the same schema for every issue\n"
        "4. Add labels to each issue from its content\n"
        "5. Use the appropriate template for each issue type\n"
        f"{json.dumps(ISSUE_TEMPLATES, indent=2)}\n"
        "JSON Schema for each issue:\n"
        f"{json.dumps(schema.get('properties', {}), indent=2)}\n\n"
        "Guidelines:\n"
        "1. Create separate issues for unrelated problems\n"
        "2. Group related but separate concerns into individual tickets\n"
        "3. Ensure each issue has clear ownership boundaries\n"
        "4. Add cross-references between related issues\n"
        "5. Include dependencies between issues where applicable\n"
        "6. Even for a single issue, return the issues array with one item\n"
        "7. Lines starting with 'USER EDIT REQUEST:' are corrections to apply to the "
        "previous result"
    )


def build_user_content(texts: list[str], images: list[ImageData]) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = [{"type": "text", "text": "\n\n".join(texts) or "(no text)"}]
    for img in images:
        content.append(
            {
                "type": "image",
                "source": {"type": "base64", "media_type": img.media_type, "data": img.data_b64},
            }
        )
    return content


class BedrockCompletion:
    def __init__(
        self,
        model_id: str,
        max_tokens: int = 4096,
        temperature: float = 0.1,
        client: Any = None,
        region: str | None = None,
    ) -> None:
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.region = region
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if self.region:
                self._client = _boto3().client("bedrock-runtime", region_name=self.region)
            else:
                self._client = _boto3().client("bedrock-runtime")
        return self._client

    def _body(self, system: str, content: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system,
            "messages": [
                {"role": "user", "content": content},
                # Prefill so the answer starts as a JSON object
                {"role": "assistant", "content": [{"type": "text", "text": JSON_PREFILL}]},
            ],
        }

    def stream(self, system: str, content: list[dict[str, Any]]) -> Iterator[str]:
        """Yield text pieces whose concatenation is the JSON document."""
        try:
            resp = self.client.invoke_model_with_response_stream(
                modelId=self.model_id,
                body=json.dumps(self._body(system, content)),
                accept="application/json",
                contentType="application/json",
            )
        except Exception as e:
            raise CompletionError(f"completion request failed: {e}") from e

        yield JSON_PREFILL
        for event in resp["body"]:
            chunk = event.get("chunk")
            if chunk is None:
                # modelStreamErrorException, throttlingException, ...
                name = next(iter(event), "unknown")
                detail = (event.get(name) or {}).get("message", "") if name != "unknown" else ""
                raise CompletionError(f"completion stream error: {name} {detail}".strip())
            data = json.loads(chunk["bytes"])
            if data.get("type") == "content_block_delta":
                delta = data.get("delta") or {}
                if delta.get("type") == "text_delta" and delta.get("text"):
                    yield delta["text"]
            elif data.get("type") == "error":
                raise CompletionError(
                    f"completion stream error: {(data.get('error') or {}).get('message', '')}"
                )
