# tests/test_anonymity_set.py
import json
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.orm import Session

from conftest import FakeLedger, FakeSigner, count_rows, public_key_for
from sentinelvote.database import queries
from sentinelvote.database.models import FoldedPublicKeys
from sentinelvote.encryption.ring_keys import CryptoStatus, crypto_error
from sentinelvote.errors import AlreadyFoldedError, CryptoPrimitiveError, NotFoldedError
from sentinelvote.ledger.fabric_client import FabricLedgerClient


def test_public_keys_exclude_empty_keys_and_authority(election):
    keys = election.anonymity_set.get_public_keys()

    # user1 and user2 hold keys; admin and the synthetic voters do not.
    assert len(keys) == 2
    assert all(key.startswith("-----BEGIN PUBLIC KEY-----") for key in keys)


def test_public_keys_follow_registration_order(election):
    election.store_user_keys("voter2@sentinelvote.tech", public_key_for(2))
    election.store_user_keys("voter1@sentinelvote.tech", public_key_for(1))

    keys = election.anonymity_set.get_public_keys()

    # Ordered by row, not by the order keys were stored.
    assert keys[2:] == [public_key_for(1), public_key_for(2)]


def test_not_folded_yet(election):
    assert election.folded_public_keys_exist() is False
    with pytest.raises(NotFoldedError):
        election.get_folded_public_keys()


def test_fold_persists_and_anchors(election, engine, fake_ledger, fake_signer):
    folded = election.fold_anonymity_set()

    assert election.get_folded_public_keys() == folded
    assert election.folded_public_keys_exist() is True
    assert count_rows(engine, FoldedPublicKeys) == 1
    assert fake_ledger.anchored == [folded]
    assert fake_signer.fold_calls == [election.anonymity_set.get_public_keys()]


def test_second_fold_conflicts_and_keeps_first_blob(election, engine, fake_signer):
    first = election.fold_anonymity_set()

    with pytest.raises(AlreadyFoldedError):
        election.fold_anonymity_set()

    assert election.get_folded_public_keys() == first
    assert count_rows(engine, FoldedPublicKeys) == 1
    # The primitive is not consulted for a refused fold.
    assert len(fake_signer.fold_calls) == 1


def test_late_key_is_not_added_to_existing_set(election):
    first = election.fold_anonymity_set()
    election.store_user_keys("voter1@sentinelvote.tech", public_key_for(1))

    with pytest.raises(AlreadyFoldedError):
        election.fold_anonymity_set()

    assert election.get_folded_public_keys() == first
    assert public_key_for(1) not in first


def test_anchor_failure_keeps_local_set(make_election, audit_logger):
    election = make_election(ledger=FakeLedger(fail=True))
    election.provision_election("production", 5)

    folded = election.fold_anonymity_set()

    assert election.get_folded_public_keys() == folded
    with open(audit_logger.log_file) as f:
        events = [json.loads(line)["event_type"] for line in f]
    assert "anonymity_set_folded" in events
    assert "anonymity_set_anchor_failed" in events


@patch("sentinelvote.ledger.fabric_client.requests.post")
def test_malformed_enrollment_reply_keeps_local_set(mock_post, make_election, engine, audit_logger):
    enrollment = MagicMock()
    enrollment.json.return_value = "service temporarily unavailable"
    mock_post.return_value = enrollment
    ledger = FabricLedgerClient("http://ledger.test:8801", "vote-channel", "SentinelVote", "admin", "adminpw")
    election = make_election(ledger=ledger)
    election.provision_election("production", 5)

    folded = election.fold_anonymity_set()

    assert election.get_folded_public_keys() == folded
    assert count_rows(engine, FoldedPublicKeys) == 1
    assert mock_post.call_count == 1
    with open(audit_logger.log_file) as f:
        events = [json.loads(line)["event_type"] for line in f]
    assert "anonymity_set_anchor_failed" in events


def test_fold_without_anchor(election, fake_ledger):
    election.anonymity_set.fold(anchor=False)
    assert fake_ledger.anchored == []


def test_primitive_failure_stores_nothing(make_election, engine):
    class RefusingSigner(FakeSigner):
        def fold_public_keys(self, public_keys, **kwargs):
            raise crypto_error(CryptoStatus.DUPLICATE_PUBLIC_KEYS)

    election = make_election(signer=RefusingSigner())
    election.provision_election("production", 5)

    with pytest.raises(CryptoPrimitiveError) as excinfo:
        election.fold_anonymity_set()

    assert excinfo.value.status == CryptoStatus.DUPLICATE_PUBLIC_KEYS
    assert count_rows(engine, FoldedPublicKeys) == 0


def test_concurrent_insert_reports_already_exists(election, engine):
    with Session(engine) as session:
        assert queries.insert_folded_public_keys(session, "first") is queries.InsertOutcome.CREATED
    with Session(engine) as session:
        assert queries.insert_folded_public_keys(session, "second") is queries.InsertOutcome.ALREADY_EXISTS
    with Session(engine) as session:
        assert queries.select_folded_public_keys(session) == "first"
