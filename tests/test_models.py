from datetime import datetime, timezone

import pytest

from clypsync.exceptions import InvalidPinError
from clypsync.models import ImageFile, Paste, PasteKind, is_valid_pin, validate_pin


@pytest.mark.parametrize("pin,valid", [
    ("4242", True),
    ("0000", True),
    ("424", False),
    ("42424", False),
    ("42a2", False),
    ("", False),
    (None, False),
    ("४२४२", False),
])
def test_pin_must_be_four_ascii_digits(pin, valid):
    assert is_valid_pin(pin) is valid


def test_validate_pin_honours_length():
    assert validate_pin("123456", length=6) == "123456"
    with pytest.raises(InvalidPinError):
        validate_pin("1234", length=6)


def test_paste_mapping_round_trip():
    paste = Paste(id="01J", room_code="4242", content="hi", kind=PasteKind.IMAGE,
                  created_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc))

    mapping = paste.to_mapping()

    assert mapping["kind"] == "image"
    assert mapping["created_at"] == "2024-05-01T12:30:00+00:00"
    assert Paste.from_mapping(mapping) == paste
    assert Paste.from_mapping(mapping).is_image


def test_paste_is_immutable():
    paste = Paste(id="1", room_code="4242", content="hi",
                  created_at=datetime.now(timezone.utc))
    with pytest.raises(Exception):
        paste.content = "changed"


def test_image_file_from_path(tmp_path):
    path = tmp_path / "Photo.JPG"
    path.write_bytes(b"data")

    image = ImageFile.from_path(path)

    assert image.content_type == "image/jpeg"
    assert image.extension == "jpg"
    assert image.size == 4


def test_image_file_without_extension_defaults_to_png():
    assert ImageFile(name="clipboard", data=b"").extension == "png"
