from __future__ import annotations

import pytest

from repokit.exceptions import MissingKeyDescriptorError, MissingKeyValueError
from repokit.repositories.keys import (
    KeyField,
    get_key_value,
    key_field_from_accessor,
    resolve_key,
)
from tests.models import Membership, Sku, Unmapped, User


def test_resolve_integer_key():
    assert resolve_key(User) == KeyField(name="id", python_type=int)


def test_resolve_string_key():
    assert resolve_key(Sku) == KeyField(name="code", python_type=str)


def test_composite_key_resolves_first_column():
    assert resolve_key(Membership).name == "user_id"


def test_unmapped_type_is_rejected():
    with pytest.raises(MissingKeyDescriptorError):
        resolve_key(Unmapped)


def test_key_from_accessor():
    key = key_field_from_accessor(User.name)
    assert key.name == "name"
    assert key.python_type is str


def test_accessor_must_be_mapped_attribute():
    with pytest.raises(MissingKeyDescriptorError):
        key_field_from_accessor("id")


def test_key_value_read_from_entity():
    assert get_key_value(User(id=7, name="x"), resolve_key(User)) == 7


def test_unset_key_value():
    with pytest.raises(MissingKeyValueError) as exc_info:
        get_key_value(User(name="x"), resolve_key(User))
    assert exc_info.value.key_name == "id"
