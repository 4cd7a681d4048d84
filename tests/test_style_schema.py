"""
StyleJson contract tests.
"""

import json

import pytest

from ghostwriter.core.exceptions import StyleContractError
from ghostwriter.schemas.style import StyleJson, load_stored_style, parse_style_json
from tests.conftest import STYLE_RESPONSE


def test_parse_valid_style():
    style = parse_style_json(json.dumps(STYLE_RESPONSE))
    assert isinstance(style, StyleJson)
    assert style.emoji_usage == "minimal"
    assert style.paragraph_density == "spaced"


def test_parse_tolerates_code_fence():
    style = parse_style_json(f"```json\n{json.dumps(STYLE_RESPONSE)}\n```")
    assert style.tone == "conversational"


@pytest.mark.parametrize(
    "field,value",
    [
        ("emoji_usage", "lots"),
        ("paragraph_density", "dense"),
        ("formality_level", 11),
        ("formality_level", "7"),
        ("hook_patterns", "question"),
    ],
)
def test_parse_rejects_off_contract_values(field, value):
    data = {**STYLE_RESPONSE, field: value}
    with pytest.raises(StyleContractError):
        parse_style_json(data)


def test_parse_rejects_missing_and_extra_fields():
    missing = {k: v for k, v in STYLE_RESPONSE.items() if k != "tone"}
    with pytest.raises(StyleContractError):
        parse_style_json(missing)

    with pytest.raises(StyleContractError):
        parse_style_json({**STYLE_RESPONSE, "industry": "software"})


def test_parse_rejects_non_json():
    with pytest.raises(StyleContractError):
        parse_style_json("The user writes casually.")


def test_load_stored_style_treats_bad_data_as_absent():
    assert load_stored_style(None) is None
    assert load_stored_style("{not json") is None
    assert load_stored_style({"tone": "x"}) is None
    assert load_stored_style(json.dumps(STYLE_RESPONSE)) == StyleJson.model_validate(STYLE_RESPONSE)
