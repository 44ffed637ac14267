"""Tests for the command line list options."""
import argparse

import pytest

from bibliotech.pipeline import ASC, DESC
from bibliotech.view import author_controls, book_controls
from catalog import apply_controls


def list_args(**overrides):
    values = {"sort": None, "desc": False, "search": "", "page": 1}
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.mark.parametrize("make_controls, field", [
    (book_controls, "title"),
    (author_controls, "last_name"),
])
def test_desc_on_default_field(make_controls, field):
    """Test that --desc wins when --sort names the default field."""
    controls = make_controls()

    apply_controls(controls, list_args(sort=field, desc=True))

    assert controls.sort_field == field
    assert controls.sort_direction == DESC


def test_sort_on_default_field_stays_ascending():
    """Test that naming the default field without --desc keeps ascending order."""
    controls = book_controls()

    apply_controls(controls, list_args(sort="title"))

    assert controls.sort_direction == ASC


def test_desc_without_sort():
    """Test that --desc alone reverses the default field."""
    controls = author_controls()

    apply_controls(controls, list_args(desc=True))

    assert controls.sort_field == "last_name"
    assert controls.sort_direction == DESC


def test_new_field_descending():
    """Test switching field and direction together."""
    controls = book_controls()

    apply_controls(controls, list_args(sort="year", desc=True, search="austen", page=2))

    assert controls.sort_field == "year"
    assert controls.sort_direction == DESC
    assert controls.search_query == "austen"
    assert controls.page == 2
