"""Tests for the notifier."""
from bibliotech.notifications import DESTRUCTIVE, Notifier


def test_listener_receives_each_notification():
    """Test that a listener sees notifications as they are raised."""
    received = []
    notifier = Notifier(listener=received.append)

    notifier.success("Book added", '"Emma" has been added successfully.')
    notifier.error("Error adding book", "duplicate key")

    assert [n.title for n in received] == ["Book added", "Error adding book"]
    assert received[1].variant == DESTRUCTIVE
    assert notifier.history == received


def test_errors_and_clear():
    """Test filtering error notifications and clearing history."""
    notifier = Notifier()
    notifier.success("Author added", "Jane Austen has been added successfully.")
    notifier.error("Error", "Please fill in all fields")

    assert [n.description for n in notifier.errors] == ["Please fill in all fields"]

    notifier.clear()
    assert notifier.history == []
