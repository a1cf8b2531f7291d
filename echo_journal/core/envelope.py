"""Generation Envelope - request payload builder and strict response parsing.

Invariants:
    - Request always asks for responseMimeType application/json with an ARRAY of STRING schema
    - Payload is read only from candidates[0].content.parts[0].text
    - Any deviation at envelope or payload level raises ApiResponseParseError,
      never KeyError/IndexError/TypeError
"""

from pydantic import BaseModel, Field, StrictStr, TypeAdapter, ValidationError

from echo_journal.core.errors import ApiResponseParseError

REFLECTION_PROMPT_TEMPLATE = (
    "Based on the following journal entry, generate three thoughtful, "
    "reflective questions for a user to consider. Format the questions as a "
    'JSON array of strings. The entry is: "{entry}"'
)

STRING_ARRAY_SCHEMA = {"type": "ARRAY", "items": {"type": "STRING"}}


def build_reflection_prompt(entry_text: str) -> str:
    return REFLECTION_PROMPT_TEMPLATE.format(entry=entry_text)


def build_generation_payload(prompt: str, response_schema: dict | None = None) -> dict:
    """Request body for generateContent."""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": response_schema or STRING_ARRAY_SCHEMA,
        },
    }


# ─── Response schema ────────────────────────────────────────────

class _Part(BaseModel):
    text: StrictStr


class _Content(BaseModel):
    parts: list[_Part] = Field(min_length=1)


class _Candidate(BaseModel):
    content: _Content


class GenerateContentEnvelope(BaseModel):
    """Subset of the generateContent response the client depends on."""
    candidates: list[_Candidate] = Field(min_length=1)

    @property
    def payload_text(self) -> str:
        return self.candidates[0].content.parts[0].text


_STRING_ARRAY = TypeAdapter(list[StrictStr])


def parse_envelope(body: str | bytes) -> GenerateContentEnvelope:
    try:
        return GenerateContentEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise ApiResponseParseError(
            f"Malformed response envelope ({e.error_count()} error(s))",
        ) from e


def parse_string_array(text: str) -> list[str]:
    try:
        return _STRING_ARRAY.validate_json(text)
    except ValidationError as e:
        raise ApiResponseParseError(
            f"Payload is not a JSON array of strings ({e.error_count()} error(s))",
        ) from e


def parse_prompts(body: str | bytes) -> list[str]:
    """Extract and decode the array of strings carried by a success envelope."""
    return parse_string_array(parse_envelope(body).payload_text)
