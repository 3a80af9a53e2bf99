import pytest

from metastore.schemas.video import VideoCreate
from metastore.utils.records import format_duration, generate_id
from metastore.utils.security import (
    BcryptPasswordHasher,
    Sha256PasswordHasher,
    generate_session_token,
    get_password_hasher,
)


@pytest.mark.parametrize("seconds, expected", [(0, "00:00"), (125, "02:05"), (3725, "01:02:05")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize("raw, expected", [(125, "02:05"), ("125", "02:05"), ("04:30", "04:30"), (None, "00:00")])
def test_video_duration_normalized(raw, expected):
    video = VideoCreate(title="t", description="d", price=0, duration=raw)
    assert video.duration == expected


def test_generate_id_shape():
    ids = {generate_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 22 and i.isalnum() for i in ids)


def test_sha256_hasher_is_plain_hex_digest():
    hasher = Sha256PasswordHasher()
    assert hasher.hash("admin123") == "240be518fabd2724ddb6f04eeb1da5967448d7e831c08c8fa822809f74c720a9"
    assert hasher.verify("admin123", hasher.hash("admin123"))
    assert not hasher.verify("admin124", hasher.hash("admin123"))


def test_bcrypt_hasher_rejects_legacy_digests():
    hasher = BcryptPasswordHasher()
    hashed = hasher.hash("s3cret")
    assert hasher.verify("s3cret", hashed)
    assert not hasher.verify("s3cret", Sha256PasswordHasher().hash("s3cret"))


def test_get_password_hasher():
    assert isinstance(get_password_hasher("sha256"), Sha256PasswordHasher)
    with pytest.raises(ValueError):
        get_password_hasher("md5")


def test_session_token():
    assert len(generate_session_token()) == 64
