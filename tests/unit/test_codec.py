import math
from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from durastep.codec import decode_output, encode_output
from durastep.exceptions import OutputCodecError


class Employee(BaseModel):
    employee_id: str
    tags: list[str] = []


@dataclass
class Laptop:
    serial: str
    ram_gb: int


def test_encode_builtins_as_json():
    assert encode_output("EMP-001") == '"EMP-001"'
    assert encode_output(None) == "null"
    assert encode_output({"a": [1, 2]}) == '{"a":[1,2]}'


def test_decode_without_type_returns_plain_json():
    assert decode_output('{"a":[1,2]}') == {"a": [1, 2]}


def test_pydantic_model_restored_with_result_type():
    text = encode_output(Employee(employee_id="EMP-1", tags=["new"]))
    restored = decode_output(text, Employee)
    assert restored == Employee(employee_id="EMP-1", tags=["new"])


def test_dataclass_restored_with_result_type():
    restored = decode_output(encode_output(Laptop("SN-1", 16)), Laptop)
    assert restored == Laptop("SN-1", 16)


def test_unencodable_value_raises():
    with pytest.raises(OutputCodecError):
        encode_output(object())


def test_decode_type_mismatch_raises():
    with pytest.raises(OutputCodecError):
        decode_output('"not a number"', int)
    with pytest.raises(ValueError):
        decode_output("{broken", dict)


def test_non_finite_floats_survive_round_trip():
    assert encode_output(math.inf) == "Infinity"
    assert decode_output(encode_output(math.inf), float) == math.inf
    assert decode_output(encode_output(-math.inf), float) == -math.inf
    assert math.isnan(decode_output(encode_output(math.nan), float))
    assert decode_output(encode_output({"ratio": math.inf}), dict[str, float]) == {
        "ratio": math.inf
    }
