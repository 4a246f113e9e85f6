import pytest

from lp_blocks.errors import InvalidInputError
from lp_blocks.models import Block, BuildConfig, MutationConfig, coerce_model


def test_block_accepts_both_spellings():
    camel = Block.model_validate({"index": 0, "type": "widget", "html": "<div></div>", "vendorPartId": "sb-part-1"})
    snake = Block.model_validate({"index": 0, "type": "widget", "html": "<div></div>", "vendor_part_id": "sb-part-1"})
    assert camel == snake
    assert camel.to_wire()["vendorPartId"] == "sb-part-1"


def test_to_wire_drops_unset_optionals():
    wire = Block(index=1, type="spacer", html="<br>").to_wire()
    assert "widgetType" not in wire
    assert wire["assets"] == []


def test_coerce_model_defaults_and_errors():
    assert coerce_model(BuildConfig, None).regenerate_ids is True
    with pytest.raises(InvalidInputError):
        coerce_model(BuildConfig, {"regenerateIds": "maybe"})
    with pytest.raises(InvalidInputError):
        coerce_model(MutationConfig, "not an object")


def test_invalid_input_error_is_value_error():
    assert issubclass(InvalidInputError, ValueError)
