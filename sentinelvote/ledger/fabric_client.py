# sentinelvote/ledger/fabric_client.py
"""Client for the ledger's REST gateway.

Every operation is a two-step exchange: enroll with the administrative
credential to obtain a short-lived bearer token, then invoke a chaincode
method with positional string arguments. Tokens are never cached, and failed
calls are never retried; the caller decides what a failure means.
"""

import logging
from dataclasses import dataclass
from typing import List, Protocol

import requests

from sentinelvote.errors import LedgerError
from sentinelvote.identifiers import uuid7_str

logger = logging.getLogger(__name__)

CONTRACT_NAMESPACE = "KVContractGo"
METHOD_PUT_FOLDED_PUBLIC_KEYS = "PutFoldedPublicKeys"
METHOD_PUT_VOTE = "PutVote"
STATUS_OK = "OK"


@dataclass(frozen=True)
class VoteReceipt:
    key: str
    status: str = STATUS_OK


class LedgerClient(Protocol):
    def anchor_folded_keys(self, folded_public_keys: str) -> str: ...

    def submit_vote(self, payload: str) -> VoteReceipt: ...


class FabricLedgerClient:
    def __init__(self, base_url, channel, contract, admin_id, admin_secret, timeout=120):
        self.base_url = base_url.rstrip('/')
        self.channel = channel
        self.contract = contract
        self.admin_id = admin_id
        self.admin_secret = admin_secret
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config['FABRIC_BASE_URL'],
            channel=config['FABRIC_CHANNEL'],
            contract=config['FABRIC_CONTRACT'],
            admin_id=config['FABRIC_ADMIN_ID'],
            admin_secret=config['FABRIC_ADMIN_SECRET'],
            timeout=config.get('LEDGER_TIMEOUT_SECONDS', 120),
        )

    @property
    def enroll_url(self):
        return f"{self.base_url}/user/enroll"

    @property
    def invoke_url(self):
        return f"{self.base_url}/invoke/{self.channel}/{self.contract}"

    def get_token(self) -> str:
        try:
            response = requests.post(
                self.enroll_url,
                json={"id": self.admin_id, "secret": self.admin_secret},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise LedgerError(f"Ledger enrollment failed: {e}") from e
        if not isinstance(body, dict):
            raise LedgerError("Ledger enrollment returned an unexpected response")
        token = body.get("token")
        if not token or not isinstance(token, str):
            raise LedgerError("Ledger enrollment returned no token")
        return token

    def invoke(self, method: str, args: List[str]) -> str:
        token = self.get_token()
        logger.info("Invoking %s:%s on %s", CONTRACT_NAMESPACE, method, self.invoke_url)
        try:
            response = requests.post(
                self.invoke_url,
                json={"method": f"{CONTRACT_NAMESPACE}:{method}", "args": list(args)},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise LedgerError(f"Ledger invocation {method} failed: {e}") from e
        return STATUS_OK

    def anchor_folded_keys(self, folded_public_keys: str) -> str:
        return self.invoke(METHOD_PUT_FOLDED_PUBLIC_KEYS, [folded_public_keys])

    def put_vote(self, key: str, payload: str) -> str:
        return self.invoke(METHOD_PUT_VOTE, [key, payload])

    def submit_vote(self, payload: str) -> VoteReceipt:
        # The key orders votes on the ledger; the payload goes through untouched.
        key = uuid7_str()
        status = self.put_vote(key, payload)
        return VoteReceipt(key=key, status=status)
