import pytest

from utils.cpf import clean_cpf, format_cpf, is_valid_cpf, mask_cpf


def test_clean_cpf_strips_punctuation():
    assert clean_cpf("529.982.247-25") == "52998224725"
    assert clean_cpf(None) == ""


def test_format_cpf_pads_with_zeros():
    assert format_cpf("52998224725") == "529.982.247-25"
    assert format_cpf("1234567890") == "012.345.678-90"


@pytest.mark.parametrize("cpf", ["52998224725", "529.982.247-25", "111.444.777-35"])
def test_valid_cpf(cpf):
    assert is_valid_cpf(cpf)


@pytest.mark.parametrize(
    "cpf",
    ["52998224724", "11111111111", "123", "", "529.982.247-2X"],
)
def test_invalid_cpf(cpf):
    assert not is_valid_cpf(cpf)


def test_mask_cpf_hides_first_and_check_digits():
    assert mask_cpf("52998224725") == "***.982.247-**"
    assert mask_cpf("529.982.247-25") == "***.982.247-**"
