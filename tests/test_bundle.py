"""Tests for the bundle codec."""

import gzip

import pytest

from tontoo import bundle
from tontoo.errors import CorruptBundleError

SECRET = "unit-test-secret"

FILES = {
    "Main.tont": '# entry\nVB: PORT: "9090"\nconsole.log: "port $PORT"\n',
    "public/index.html": "<h1>Grüße</h1>",
    "tont-packets/util/helpers.tont": ":start: greet\nconsole.log: \"hi\"\n:end:\n",
    "empty.txt": "",
}


def test_round_trip_preserves_file_map() -> None:
    assert bundle.decode(bundle.encode(FILES, secret=SECRET), secret=SECRET) == FILES


def test_round_trip_of_empty_map() -> None:
    assert bundle.decode(bundle.encode({}, secret=SECRET), secret=SECRET) == {}


def test_each_encoding_uses_a_fresh_iv() -> None:
    first = gzip.decompress(bundle.encode(FILES, secret=SECRET)).decode()
    second = gzip.decompress(bundle.encode(FILES, secret=SECRET)).decode()
    assert first.split(":")[0] != second.split(":")[0]


def test_outer_layer_is_gzip_around_hex_iv_and_ciphertext() -> None:
    data = bundle.encode(FILES, secret=SECRET)
    assert data[:2] == b"\x1f\x8b"
    iv_hex, _, cipher_hex = gzip.decompress(data).decode().partition(":")
    assert len(bytes.fromhex(iv_hex)) == 16
    assert len(bytes.fromhex(cipher_hex)) % 16 == 0


def test_default_secret_comes_from_settings() -> None:
    assert bundle.decode(bundle.encode(FILES)) == FILES


def test_wrong_secret_is_reported_as_corrupt() -> None:
    data = bundle.encode(FILES, secret=SECRET)
    with pytest.raises(CorruptBundleError):
        bundle.decode(data, secret="another-secret")


@pytest.mark.parametrize(
    "data",
    [
        b"definitely not gzip",
        gzip.compress(b"no separator here"),
        gzip.compress(b"zz:00"),
        gzip.compress(b"00112233:abcd"),
    ],
)
def test_malformed_input_is_reported_as_corrupt(data: bytes) -> None:
    with pytest.raises(CorruptBundleError):
        bundle.decode(data, secret=SECRET)


def test_truncated_stream_is_reported_as_corrupt() -> None:
    data = bundle.encode(FILES, secret=SECRET)
    with pytest.raises(CorruptBundleError):
        bundle.decode(data[: len(data) // 2], secret=SECRET)


def test_payload_that_is_not_a_file_map_is_corrupt() -> None:
    data = gzip.compress(bundle.encrypt_text("[1, 2, 3]", secret=SECRET).encode())
    with pytest.raises(CorruptBundleError, match="file map"):
        bundle.decode(data, secret=SECRET)


def test_strip_comments_drops_full_line_comments_only() -> None:
    text = '# heading\nVB: A: "1"  # trailing stays\n    # indented comment\nconsole.log: "x"\n'
    assert bundle.strip_comments(text) == 'VB: A: "1"  # trailing stays\nconsole.log: "x"\n'


def test_distributable_strips_comments_from_sources_only() -> None:
    files = {"Main.tont": "# note\nconsole.log: \"x\"", "README.md": "# Title"}
    data = bundle.encode_distributable(files, secret=SECRET, source_extension=".tont")
    assert bundle.decode(data, secret=SECRET) == {"Main.tont": 'console.log: "x"', "README.md": "# Title"}
