# sentinelvote/audit/audit_logger.py

import base64
import hashlib
import json
import logging
import os
import threading
from datetime import datetime

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

logger = logging.getLogger(__name__)

# Election audit trail: JSON lines, each hash-chained to its predecessor and
# signed with the process's Ed25519 key.


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = signing_key or Ed25519PrivateKey.generate()
        self._load_previous_hash()

    def _load_previous_hash(self):
        if not os.path.exists(self.log_file):
            return
        with open(self.log_file, 'r') as f:
            lines = [line for line in f if line.strip()]
        if lines:
            try:
                self.previous_hash = json.loads(lines[-1]).get('hash')
            except ValueError:
                self.previous_hash = None

    def record(self, event_type, data=None, actor=None):
        """Append an event. Failures are logged and never propagate to the caller."""
        with self._lock:
            try:
                entry = {
                    "timestamp": datetime.utcnow().isoformat(),
                    "event_type": event_type,
                    "data": data or {},
                    "actor": actor,
                    "previous_hash": self.previous_hash,
                }
                entry_json = json.dumps(entry, sort_keys=True)
                entry['hash'] = hashlib.sha256(entry_json.encode()).hexdigest()
                entry['signature'] = base64.b64encode(self.signing_key.sign(entry_json.encode())).decode()

                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(entry) + "\n")

                self.previous_hash = entry['hash']
            except (OSError, TypeError, ValueError) as e:
                logger.error("Audit log error for %s: %s", event_type, e)

    def verify_log_integrity(self):
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash = None
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    entry = json.loads(line)
                    if entry.get('previous_hash') != previous_hash:
                        return False
                    signature = base64.b64decode(entry.pop('signature'))
                    entry_hash = entry.pop('hash')
                    entry_json = json.dumps(entry, sort_keys=True).encode()
                    if hashlib.sha256(entry_json).hexdigest() != entry_hash:
                        return False
                    public_key.verify(signature, entry_json)
                    previous_hash = entry_hash
        except (KeyError, ValueError, InvalidSignature):
            return False
        return True
