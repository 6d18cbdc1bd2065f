"""Tests for core/query.py: term to bazaar URL translation."""

import pytest

from core.models import SearchTerm
from core.query import DEFAULT_BASE_URL, QUERY_PARAMS, build_query, build_url


def test_name_term_is_form_encoded():
    url = build_url([SearchTerm("Name", "Fabled Earthshaker")])
    assert url == DEFAULT_BASE_URL + "&item=Fabled+Earthshaker"
    assert url.endswith("&item=Fabled+Earthshaker")


@pytest.mark.parametrize("key,param", sorted(QUERY_PARAMS.items()))
def test_each_recognized_key_maps_to_its_parameter(key, param):
    assert build_query([SearchTerm(key, "1")]) == f"&{param}=1"


def test_terms_keep_input_order_and_repeat():
    terms = [
        SearchTerm("Slot", "131072"),
        SearchTerm("Name", "Cloak of Flames"),
        SearchTerm("Stat", "ac"),
        SearchTerm("Slot", "4"),
    ]
    assert build_query(terms) == "&slot=131072&item=Cloak+of+Flames&stat=ac&slot=4"


def test_unrecognized_keys_add_nothing():
    terms = [
        SearchTerm("Compare", "<"),
        SearchTerm("Price", "1000"),
        SearchTerm("Colour", "red"),
        SearchTerm("name", "lowercase key"),
    ]
    assert build_query(terms) == ""
    assert build_url(terms) == DEFAULT_BASE_URL


def test_special_characters_are_escaped():
    query = build_query([SearchTerm("Name", "Sword & Board/50% <Epic>")])
    assert query == "&item=Sword+%26+Board%2F50%25+%3CEpic%3E"


def test_translation_is_idempotent():
    terms = [SearchTerm("Name", "Velium Shard"), SearchTerm("PriceMax", "1000")]
    assert build_url(terms) == build_url(terms)


def test_custom_base_url():
    url = build_url([SearchTerm("Class", "4096")], "http://localhost/bazaar?x=1")
    assert url == "http://localhost/bazaar?x=1&class=4096"
