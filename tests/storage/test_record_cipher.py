from __future__ import annotations

import base64

import pytest

from sukusuku.allocator import Assignment, Party
from sukusuku.analyzer import EmotionEstimator, FrameDiffClassifier, TemperatureMonitor
from sukusuku.crypto import KeyRing, RecordCipher, generate_key
from sukusuku.errors import ConfigError, DecryptionFailure

pytestmark = pytest.mark.storage

PATH = "users/u1/gestures"


def test_every_record_kind_round_trips(cipher: RecordCipher) -> None:
    records = [
        FrameDiffClassifier().classify([300.0] * 1000).to_record(),
        TemperatureMonitor().check(38.5).to_record(),
        EmotionEstimator().estimate(151).to_record(),
        Assignment("feed", Party.PARTY_B).to_record(),
        {"event": "公園の集まり", "time": "2026-05-01T10:00"},
        {"agreed": True, "time": "2026-05-01T10:00:00+00:00"},
    ]

    for record in records:
        assert cipher.decrypt(cipher.encrypt(record, PATH), PATH) == record


def test_each_record_gets_a_fresh_nonce(cipher: RecordCipher) -> None:
    first = cipher.encrypt({"temp": 37.0}, PATH)
    second = cipher.encrypt({"temp": 37.0}, PATH)

    assert first != second
    assert first.split(".")[2] != second.split(".")[2]
    assert "37.0" not in first


def test_blob_is_bound_to_its_path(cipher: RecordCipher) -> None:
    blob = cipher.encrypt({"temp": 39.0}, "users/u1/health")

    with pytest.raises(DecryptionFailure, match="Authentication failed"):
        cipher.decrypt(blob, "users/u2/health")


def test_tampered_blob_fails(cipher: RecordCipher) -> None:
    version, key_id, nonce, body = cipher.encrypt({"temp": 39.0}, PATH).split(".")
    flipped = ("A" if body[0] != "A" else "B") + body[1:]

    with pytest.raises(DecryptionFailure):
        cipher.decrypt(".".join((version, key_id, nonce, flipped)), PATH, entry_id=7)


@pytest.mark.parametrize("blob", ["", "garbage", "v0.k1.abc.def", "v1.k1.!!!.???", 42])
def test_malformed_blobs_fail(cipher: RecordCipher, blob) -> None:
    with pytest.raises(DecryptionFailure):
        cipher.decrypt(blob, PATH)


def test_rotation_keeps_old_records_readable(keyring: KeyRing) -> None:
    old_blob = RecordCipher(keyring).encrypt({"n": 1}, PATH)

    rotated = keyring.rotate("k2", bytes(32))
    cipher = RecordCipher(rotated)
    new_blob = cipher.encrypt({"n": 2}, PATH)

    assert new_blob.split(".")[1] == "k2"
    assert cipher.decrypt(old_blob, PATH) == {"n": 1}
    assert cipher.decrypt(new_blob, PATH) == {"n": 2}


def test_unknown_key_id_fails(keyring: KeyRing) -> None:
    blob = RecordCipher(keyring.rotate("k2", bytes(32))).encrypt({"n": 1}, PATH)

    with pytest.raises(DecryptionFailure, match="Unknown key id 'k2'"):
        RecordCipher(keyring).decrypt(blob, PATH)


def test_keyring_validation() -> None:
    with pytest.raises(ConfigError):
        KeyRing(keys={}, active_key_id="k1")
    with pytest.raises(ConfigError):
        KeyRing(keys={"k1": b"short"}, active_key_id="k1")
    with pytest.raises(ConfigError):
        KeyRing(keys={"k1": bytes(32)}, active_key_id="k2")
    with pytest.raises(ConfigError):
        KeyRing(keys={"a.b": bytes(32)}, active_key_id="a.b")


def test_keyring_from_encoded() -> None:
    key = generate_key()
    assert len(base64.b64decode(key)) == 32

    ring = KeyRing.from_encoded({"only": key})
    assert ring.active_key_id == "only"

    with pytest.raises(ConfigError, match="active_key_id"):
        KeyRing.from_encoded({"a": key, "b": generate_key()})
    with pytest.raises(ConfigError, match="base64"):
        KeyRing.from_encoded({"a": "not base64!"})
