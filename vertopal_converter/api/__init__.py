"""Vertopal API package: transport, operations, and error taxonomy.

WHY: Everything that talks HTTP to Vertopal lives here, so the workflow
layer never touches httpx directly.

HOW: interface.py is the transport (auth, retries, timeouts),
classifier.py turns error envelopes into VertopalError, client.py adds one
method per remote operation, and models.py gives typed views of the
envelopes the workflow reads.

RULES:
- All HTTP calls go through Interface.send_request()
- Authentication is a Bearer token from the Credential
"""

from vertopal_converter.api.client import VertopalClient
from vertopal_converter.api.errors import ErrorKind, VertopalError

__all__ = ["ErrorKind", "VertopalClient", "VertopalError"]
