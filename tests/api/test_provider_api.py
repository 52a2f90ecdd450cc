from datetime import date

import pytest
import requests
from conftest import BASE_URL, json_envelope, xml_envelope

from ocsclient.errors import ServiceError, TransportError
from ocsclient.models.credentials import Credentials
from ocsclient.models.enums import CommentType, JobStatus, SortMode
from ocsclient.schemas.content import Category, Content
from ocsclient.services.provider import Provider

FRIENDS_XML = xml_envelope(
    "<person><personid>frank</personid><firstname>Frank</firstname></person>"
    "<person><personid>laura</personid><firstname>Laura</firstname><homepage2>x</homepage2></person>",
    totalitems=2,
)


def run(job):
    job.start()
    assert job.wait(5), f"{job!r} did not complete"
    return job


def test_request_friends_end_to_end(http_provider, requests_mock):
    requests_mock.get(BASE_URL + "friend/data/alice", content=FRIENDS_XML)

    job = run(http_provider.request_friends("alice", page=0, page_size=10))

    assert job.status is JobStatus.SUCCEEDED
    assert [p.first_name for p in job.result()] == ["Frank", "Laura"]
    assert job.result()[1].extended_attributes == {"homepage2": "x"}
    assert job.metadata.total_items == 2
    assert requests_mock.last_request.url == BASE_URL + "friend/data/alice?page=0&pagesize=10"
    assert requests_mock.last_request.headers["Authorization"] == "Basic YWxpY2U6czNjcmV0"


def test_search_contents_query(http_provider, requests_mock):
    requests_mock.get(BASE_URL + "content/data", content=xml_envelope("", totalitems=0))

    job = run(http_provider.search_contents(
        [Category(id="1"), "2"], "space theme", SortMode.DOWNLOADS, page=3, page_size=20, licenses=["5"],
    ))

    assert job.result() == []
    assert requests_mock.last_request.url == (
        BASE_URL + "content/data?categories=1x2&distribution=&license=5&search=space%20theme"
        "&sortmode=down&page=3&pagesize=20"
    )


def test_service_error_end_to_end(http_provider, requests_mock):
    requests_mock.get(BASE_URL + "content/data/99", content=xml_envelope(status="failed", statuscode=101,
                                                                        message="content not found"))

    job = run(http_provider.request_content("99"))

    assert isinstance(job.error, ServiceError)
    with pytest.raises(ServiceError, match="content not found"):
        job.result()


def test_http_error_without_envelope(http_provider, requests_mock):
    requests_mock.get(BASE_URL + "person/self", status_code=500, content=b"")

    job = run(http_provider.request_person_self())

    with pytest.raises(TransportError) as exc_info:
        job.result()
    assert exc_info.value.transport_code == "500"


def test_network_timeout(http_provider, requests_mock):
    requests_mock.get(BASE_URL + "person/self", exc=requests.exceptions.ConnectTimeout)

    job = run(http_provider.request_person_self())

    assert isinstance(job.error, TransportError)
    assert job.error.transport_code == "TIMEOUT"


def test_post_form_data(http_provider, requests_mock):
    requests_mock.post(BASE_URL + "friend/invite/frank", content=xml_envelope())

    job = run(http_provider.invite_friend("frank", "hello"))

    assert job.result().is_ok
    assert requests_mock.last_request.method == "POST"
    assert requests_mock.last_request.text == "message=hello"


def test_upload_download_file(http_provider, requests_mock):
    requests_mock.post(BASE_URL + "content/uploaddownload/5", content=xml_envelope())

    run(http_provider.set_download_file("5", "theme.tar.gz", b"payload"))

    body = requests_mock.last_request.body
    assert b'name="localfile"; filename="theme.tar.gz"' in body
    assert b"payload" in body


def test_add_new_content_posts_fields(http_provider, requests_mock):
    requests_mock.post(BASE_URL + "content/add", content=xml_envelope("<content><id>77</id></content>"))
    content = Content.from_fields({"name": "Dark Theme", "version": "1.0", "homepage": "https://example.org"})

    job = run(http_provider.add_new_content(Category(id="6"), content))

    assert job.result().id == "77"
    form = requests_mock.last_request.text
    assert "type=6" in form
    assert "name=Dark+Theme" in form
    assert "version=1.0" in form
    assert "homepage=https%3A%2F%2Fexample.org" in form
    assert "downloads" in form


def test_add_new_content_needs_valid_category(json_provider):
    with pytest.raises(ValueError):
        json_provider.add_new_content(Category(), Content(name="x"))


def test_json_provider_asks_for_json(json_provider, fake_transport):
    fake_transport.content = json_envelope({"personid": "frank"})

    job = run(json_provider.request_person("frank"))

    assert job.result().id == "frank"
    assert fake_transport.requests[0].url == BASE_URL + "person/data/frank?format=json"


def test_jobs_are_not_started(json_provider, fake_transport):
    job = json_provider.request_categories()
    assert job.status is JobStatus.CREATED
    assert fake_transport.requests == []


def test_saved_credentials_only_affect_later_jobs(json_provider, credential_store):
    before = json_provider.request_person_self()
    assert json_provider.save_credentials("bob", "hunter2") is True
    after = json_provider.request_person_self()

    assert before.request.credentials == Credentials("alice", "s3cret")
    assert after.request.credentials == Credentials("bob", "hunter2")
    assert credential_store.load(BASE_URL) == Credentials("bob", "hunter2")
    assert json_provider.has_credentials()


def test_anonymous_provider_sends_no_auth(fake_transport):
    provider = Provider(BASE_URL, transport=fake_transport, wire_format="json")
    assert not provider.has_credentials()
    job = provider.request_categories()
    assert "Authorization" not in job.request.header_map()


def test_service_capabilities(json_provider):
    assert json_provider.has_content_service()
    assert json_provider.has_person_service()
    assert not json_provider.has_friend_service()
    assert not json_provider.has_event_service()
    assert json_provider.service_version("content") == "1.6"
    assert json_provider.is_valid
    assert not Provider("not a url", transport=json_provider.transport).is_valid


@pytest.mark.parametrize("rating", [-1, 101])
def test_rating_out_of_range(json_provider, rating):
    with pytest.raises(ValueError):
        json_provider.vote_for_content("5", rating)
    with pytest.raises(ValueError):
        json_provider.vote_for_comment("5", rating)


def test_vote_for_content_forms(json_provider):
    assert json_provider.vote_for_content("5", True).request.form == (("vote", "good"),)
    assert json_provider.vote_for_content("5", False).request.form == (("vote", "bad"),)
    assert json_provider.vote_for_content("5", 80).request.form == (("vote", "80"),)


def test_search_events_query(json_provider):
    job = json_provider.search_events("", "party", date(2009, 4, 1), SortMode.RATING)
    assert job.request.url == BASE_URL + "event/data?search=party&startat=2009-04-01&page=0&pagesize=10&format=json"


def test_knowledge_base_has_no_download_sorting(json_provider):
    job = json_provider.search_knowledge_base(Content(id="12"), sort_mode=SortMode.DOWNLOADS)
    assert "content=12&search=&sortmode=new" in job.request.url


def test_request_comments_path(json_provider):
    job = json_provider.request_comments(CommentType.CONTENT, "100", page=1, page_size=5)
    assert job.request.resource_path == "comments/data/1/100/0"
    assert job.request.url.endswith("?page=1&pagesize=5&format=json")


def test_from_env(mocker):
    mocker.patch("ocsclient.services.provider.OCS_BASE_URL", "https://env.example.org/v1/")
    transport = mocker.MagicMock()
    provider = Provider.from_env(transport=transport)
    assert provider.base_url == "https://env.example.org/v1/"
    assert provider.has_message_service()


def test_search_events_always_sends_startat(json_provider):
    job = json_provider.search_events()
    assert job.request.url == BASE_URL + "event/data?sortmode=new&startat=&page=0&pagesize=10&format=json"


def test_provider_closes_its_own_transport(mocker):
    close = mocker.patch("ocsclient.services.provider.RequestsTransport.close")

    with Provider(BASE_URL) as provider:
        assert provider.is_valid

    close.assert_called_once_with()


def test_provider_leaves_injected_transport_open(mocker):
    transport = mocker.MagicMock()

    with Provider(BASE_URL, transport=transport):
        pass

    transport.close.assert_not_called()
