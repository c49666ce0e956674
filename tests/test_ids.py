# tests/test_ids.py
import pytest

from modules.job_harvest.lib.errors import ListingError
from modules.job_harvest.lib.ids import IdGenerator, native_id_from_url


def test_ids_are_platform_prefixed_and_lowercased():
    gen = IdGenerator("Djinni")
    assert gen.platform == "djinni"
    assert gen.generate(123) == "djinni:123"
    assert gen.generate(" abc ") == "djinni:abc"


@pytest.mark.parametrize("platform", ["", "   ", "a:b", "two words"])
def test_invalid_platform_names_are_rejected(platform):
    with pytest.raises(ValueError):
        IdGenerator(platform)


@pytest.mark.parametrize("native", [None, "", "  "])
def test_empty_native_id_is_a_listing_error(native):
    with pytest.raises(ListingError):
        IdGenerator("dou").generate(native)


def test_native_id_from_url_pattern_group():
    assert native_id_from_url("https://djinni.co/jobs/12345-senior-net/", r"/jobs/(\d+)") == "12345"
    # no group -> whole match
    assert native_id_from_url("https://x.test/view/987654321", r"\d{8,}") == "987654321"


def test_hash_fallback_is_stable_and_ignores_tracking():
    a = native_id_from_url("https://acme.test/careers/job?id=7&utm_source=feed#apply")
    b = native_id_from_url("https://acme.test/careers/job?id=7")
    assert a == b
    assert len(a) == 16
    int(a, 16)  # hex digest
    assert native_id_from_url("https://acme.test/careers/job?id=8") != a


def test_pattern_miss_falls_back_to_hash():
    gen = IdGenerator("work_ua")
    assert gen.from_url("https://www.work.ua/jobs/abc/", r"/jobs/(\d+)/") == gen.from_url("https://www.work.ua/jobs/abc/")


def test_same_native_id_on_two_platforms_never_collides():
    assert IdGenerator("djinni").generate("1") != IdGenerator("dou").generate("1")
