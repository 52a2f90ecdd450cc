import json
from concurrent.futures import Future

import pytest

from ocsclient.errors import TransportError
from ocsclient.models.credentials import Credentials
from ocsclient.repositories.credential_store import InMemoryCredentialStore
from ocsclient.services.provider import Provider
from ocsclient.services.transport import RequestsTransport, TransportResponse

BASE_URL = "https://api.example.org/v1/"


def json_envelope(data=None, status="ok", statuscode=100, message=None, **extra):
    doc = {"status": status, "statuscode": statuscode, "message": message, **extra}
    if data is not None:
        doc["data"] = data
    return json.dumps(doc).encode("utf-8")


def xml_envelope(data_xml=None, status="ok", statuscode=100, message="", totalitems=None):
    meta = f"<status>{status}</status><statuscode>{statuscode}</statuscode><message>{message}</message>"
    if totalitems is not None:
        meta += f"<totalitems>{totalitems}</totalitems><itemsperpage>10</itemsperpage>"
    body = f'<?xml version="1.0"?><ocs><meta>{meta}</meta>'
    if data_xml is not None:
        body += f"<data>{data_xml}</data>"
    return (body + "</ocs>").encode("utf-8")


class FakeTransport:
    """Answers every request with a canned response (or error) on a completed future."""

    def __init__(self, content=b"", status_code=200, error=None, pending=False):
        self.content = content
        self.status_code = status_code
        self.error = error
        self.pending = pending
        self.requests = []
        self.futures = []

    def execute(self, request):
        self.requests.append(request)
        future = Future()
        self.futures.append(future)
        if not self.pending:
            self.complete(future)
        return future

    def complete(self, future):
        if self.error is not None:
            future.set_exception(self.error)
        else:
            future.set_result(TransportResponse(self.status_code, self.content, "OK" if self.status_code < 400 else "Error"))


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def transport_error():
    return TransportError("CONNECTION_ERROR", "connection refused")


@pytest.fixture
def credential_store():
    return InMemoryCredentialStore({BASE_URL: Credentials("alice", "s3cret")})


@pytest.fixture
def json_provider(fake_transport, credential_store):
    return Provider(
        BASE_URL,
        "example",
        versions={"content": "1.6", "person": "1.6", "friend": ""},
        credential_store=credential_store,
        transport=fake_transport,
        wire_format="json",
    )


@pytest.fixture
def http_provider(credential_store):
    transport = RequestsTransport(max_workers=2)
    yield Provider(BASE_URL, "example", credential_store=credential_store, transport=transport, wire_format="xml")
    transport.close()
