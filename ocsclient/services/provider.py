import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse

from ocsclient.config import (
    OCS_BASE_URL,
    OCS_DEFAULT_PAGE_SIZE,
    OCS_LENIENT_LISTS,
    OCS_PROVIDER_NAME,
    OCS_SERVICE_VERSION,
    OCS_WIRE_FORMAT,
    SERVICES,
)
from ocsclient.models.credentials import Credentials
from ocsclient.models.enums import CommentType, MessageStatus, SortMode, WireFormat
from ocsclient.repositories.credential_store import CredentialStore, EnvCredentialStore, InMemoryCredentialStore
from ocsclient.schemas.base import Entity
from ocsclient.schemas.buildservice import BuildService, BuildServiceJob, Project, Publisher, RemoteAccount
from ocsclient.schemas.content import (
    Category,
    Comment,
    Content,
    Distribution,
    DownloadItem,
    HomePageType,
    KnowledgeBaseEntry,
    License,
)
from ocsclient.schemas.social import AccountBalance, Activity, Event, Folder, Message, Person, PrivateData
from ocsclient.services.jobs import ItemJob, ListJob, PostJob
from ocsclient.services.parsers import parser_for
from ocsclient.services.request_builder import FileUpload, QueryParams, RequestDescriptor, build_request, build_url
from ocsclient.services.transport import RequestsTransport

MAX_RATING = 100


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable snapshot of everything a job needs from its provider."""

    base_url: str
    name: str = ""
    icon_url: str = ""
    versions: Mapping[str, str] = field(default_factory=dict)
    credentials: Optional[Credentials] = None
    wire_format: WireFormat = WireFormat.XML
    lenient: bool = True


def _ids(items: Iterable[Union[Entity, str, int]]) -> List[str]:
    return [item.id if isinstance(item, Entity) else str(item) for item in items]


def _paging(page: int, page_size: Optional[int]) -> List[Tuple[str, Any]]:
    return [("page", page), ("pagesize", OCS_DEFAULT_PAGE_SIZE if page_size is None else page_size)]


def _check_rating(rating: int):
    if not 0 <= rating <= MAX_RATING:
        raise ValueError(f"rating must be between 0 and {MAX_RATING}, got {rating}")


class Provider:
    """Facade for one OCS service: base address, versions and credentials.

    Every ``request_*``/``search_*``/``create_*``... method builds a request
    from the current configuration snapshot and returns a job that has not
    been started yet. Jobs keep that snapshot; changing credentials later only
    affects jobs created afterwards.
    """

    def __init__(
        self,
        base_url: str,
        name: str = "",
        *,
        icon_url: str = "",
        versions: Optional[Mapping[str, str]] = None,
        credential_store: Optional[CredentialStore] = None,
        transport=None,
        wire_format: Union[WireFormat, str] = OCS_WIRE_FORMAT,
        lenient: bool = OCS_LENIENT_LISTS,
    ):
        self.credential_store = credential_store or InMemoryCredentialStore()
        self._owns_transport = transport is None
        self.transport = transport or RequestsTransport()
        self._lock = threading.Lock()

        credentials = self.credential_store.load(base_url) if base_url else None
        self._config = ProviderConfig(
            base_url=base_url,
            name=name,
            icon_url=icon_url,
            versions=MappingProxyType(dict(versions or {})),
            credentials=credentials or None,
            wire_format=WireFormat(wire_format),
            lenient=lenient,
        )

    @classmethod
    def from_env(cls, **kwargs) -> "Provider":
        kwargs.setdefault("credential_store", EnvCredentialStore())
        kwargs.setdefault("versions", {service: OCS_SERVICE_VERSION for service in SERVICES})
        return cls(OCS_BASE_URL, OCS_PROVIDER_NAME, **kwargs)

    def __repr__(self):
        return f"<Provider {self._config.name or self._config.base_url}>"

    def close(self):
        """Release the transport if this provider created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def is_valid(self) -> bool:
        parts = urlparse(self._config.base_url)
        return bool(parts.scheme and parts.netloc)

    # -- credentials -------------------------------------------------------

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._config.credentials

    def has_credentials(self) -> bool:
        return self.credential_store.has_credentials(self.base_url)

    def load_credentials(self) -> Optional[Credentials]:
        credentials = self.credential_store.load(self.base_url)
        if credentials:
            self._replace_config(credentials=credentials)
        return credentials

    def save_credentials(self, user: str, password: str) -> bool:
        credentials = Credentials(user, password)
        self._replace_config(credentials=credentials or None)
        return self.credential_store.save(self.base_url, credentials)

    def _replace_config(self, **changes):
        with self._lock:
            self._config = dataclasses.replace(self._config, **changes)

    # -- capabilities ------------------------------------------------------

    def service_version(self, service: str) -> str:
        return self._config.versions.get(service, "")

    def has_service(self, service: str) -> bool:
        return bool(self.service_version(service))

    def has_activity_service(self) -> bool:
        return self.has_service("activity")

    def has_comment_service(self) -> bool:
        return self.has_service("comment")

    def has_content_service(self) -> bool:
        return self.has_service("content")

    def has_event_service(self) -> bool:
        return self.has_service("event")

    def has_fan_service(self) -> bool:
        return self.has_service("fan")

    def has_friend_service(self) -> bool:
        return self.has_service("friend")

    def has_knowledgebase_service(self) -> bool:
        return self.has_service("knowledgebase")

    def has_message_service(self) -> bool:
        return self.has_service("message")

    def has_person_service(self) -> bool:
        return self.has_service("person")

    # -- job plumbing ------------------------------------------------------

    def _request(self, path: str, params: Optional[QueryParams] = None, *, method: str = "GET",
                 form: Optional[QueryParams] = None,
                 files: Optional[Dict[str, FileUpload]] = None) -> Tuple[ProviderConfig, RequestDescriptor]:
        config = self._config
        params = list(params or [])
        if config.wire_format is WireFormat.JSON:
            params.append(("format", "json"))
        url = build_url(config.base_url, path, params)
        request = build_request(url, config.credentials, method=method, form=form, files=files, resource_path=path)
        return config, request

    def _item_job(self, entity_type, path, params=None, **kwargs) -> ItemJob:
        config, request = self._request(path, params, **kwargs)
        return ItemJob(request, self.transport, parser_for(config.wire_format), entity_type, config.lenient)

    def _list_job(self, entity_type, path, params=None) -> ListJob:
        config, request = self._request(path, params)
        return ListJob(request, self.transport, parser_for(config.wire_format), entity_type, config.lenient)

    def _post_job(self, path, form=None, files=None) -> PostJob:
        config, request = self._request(path, method="POST", form=form, files=files)
        return PostJob(request, self.transport, parser_for(config.wire_format), config.lenient)

    # -- accounts and persons ----------------------------------------------

    def check_login(self, user: str, password: str) -> PostJob:
        return self._post_job("person/check", [("login", user), ("password", password)])

    def register_account(self, login: str, password: str, mail: str, first_name: str, last_name: str) -> PostJob:
        return self._post_job("person/add", [
            ("login", login),
            ("password", password),
            ("firstname", first_name),
            ("lastname", last_name),
            ("email", mail),
        ])

    def request_person(self, person_id: str) -> ItemJob[Person]:
        return self._item_job(Person, f"person/data/{person_id}")

    def request_person_self(self) -> ItemJob[Person]:
        return self._item_job(Person, "person/self")

    def request_account_balance(self) -> ItemJob[AccountBalance]:
        return self._item_job(AccountBalance, "person/balance")

    def search_persons_by_name(self, name: str) -> ListJob[Person]:
        return self._list_job(Person, "person/data", [("name", name)])

    def search_persons_by_location(self, latitude: float, longitude: float, distance: float = 0.0,
                                   page: int = 0, page_size: Optional[int] = None) -> ListJob[Person]:
        params = [("latitude", latitude), ("longitude", longitude)]
        if distance > 0.0:
            params.append(("distance", distance))
        return self._list_job(Person, "person/data", params + _paging(page, page_size))

    def post_location(self, latitude: float, longitude: float, city: str = "", country: str = "") -> PostJob:
        return self._post_job("person/self", [
            ("latitude", latitude),
            ("longitude", longitude),
            ("city", city),
            ("country", country),
        ])

    # -- friends -----------------------------------------------------------

    def request_friends(self, person_id: str, page: int = 0, page_size: Optional[int] = None) -> ListJob[Person]:
        return self._list_job(Person, f"friend/data/{person_id}", _paging(page, page_size))

    def request_sent_invitations(self, page: int = 0, page_size: Optional[int] = None) -> ListJob[Person]:
        return self._list_job(Person, "friend/sentinvitations", _paging(page, page_size))

    def request_received_invitations(self, page: int = 0, page_size: Optional[int] = None) -> ListJob[Person]:
        return self._list_job(Person, "friend/receivedinvitations", _paging(page, page_size))

    def invite_friend(self, to: str, message: str) -> PostJob:
        return self._post_job(f"friend/invite/{to}", [("message", message)])

    def approve_friendship(self, to: str) -> PostJob:
        return self._post_job(f"friend/approve/{to}")

    def decline_friendship(self, to: str) -> PostJob:
        return self._post_job(f"friend/decline/{to}")

    def cancel_friendship(self, to: str) -> PostJob:
        return self._post_job(f"friend/cancel/{to}")

    # -- activity and messages ---------------------------------------------

    def request_activities(self) -> ListJob[Activity]:
        return self._list_job(Activity, "activity")

    def post_activity(self, message: str) -> PostJob:
        return self._post_job("activity", [("message", message)])

    def request_folders(self) -> ListJob[Folder]:
        return self._list_job(Folder, "message")

    def request_messages(self, folder: Folder, status: Optional[MessageStatus] = None) -> ListJob[Message]:
        params = []
        if status is not None:
            params.append(("status", int(status)))
        return self._list_job(Message, f"message/{folder.id}", params)

    def request_message(self, folder: Folder, message_id: str) -> ItemJob[Message]:
        return self._item_job(Message, f"message/{folder.id}/{message_id}")

    def post_message(self, message: Message) -> PostJob:
        # folder 2 is the outbox
        return self._post_job("message/2", [
            ("message", message.body),
            ("subject", message.subject),
            ("to", message.recipient),
        ])

    # -- content -----------------------------------------------------------

    def request_categories(self) -> ListJob[Category]:
        return self._list_job(Category, "content/categories")

    def request_licenses(self) -> ListJob[License]:
        return self._list_job(License, "content/licenses")

    def request_distributions(self) -> ListJob[Distribution]:
        return self._list_job(Distribution, "content/distributions")

    def request_home_page_types(self) -> ListJob[HomePageType]:
        return self._list_job(HomePageType, "content/homepages")

    def search_contents(self, categories: Iterable[Union[Category, str]], search: str = "",
                        sort_mode: SortMode = SortMode.NEWEST, page: int = 0, page_size: Optional[int] = None,
                        *, person: str = "", distributions: Iterable[Union[Distribution, str]] = (),
                        licenses: Iterable[Union[License, str]] = ()) -> ListJob[Content]:
        params = [
            ("categories", "x".join(_ids(categories))),
            ("distribution", ",".join(_ids(distributions))),
            ("license", ",".join(_ids(licenses))),
        ]
        if person:
            params.append(("user", person))
        params.append(("search", search))
        params.append(("sortmode", SortMode(sort_mode).value))
        return self._list_job(Content, "content/data", params + _paging(page, page_size))

    def search_contents_by_person(self, categories: Iterable[Union[Category, str]], person: str, search: str = "",
                                  sort_mode: SortMode = SortMode.NEWEST, page: int = 0,
                                  page_size: Optional[int] = None) -> ListJob[Content]:
        return self.search_contents(categories, search, sort_mode, page, page_size, person=person)

    def request_content(self, content_id: str) -> ItemJob[Content]:
        return self._item_job(Content, f"content/data/{content_id}")

    def _content_form(self, category: Category, content: Content) -> List[Tuple[str, str]]:
        if not category.is_valid:
            raise ValueError("content needs a valid category")
        fields = {key: value for key, value in content.to_fields().items() if value}
        fields["type"] = category.id
        fields["name"] = content.name
        return list(fields.items())

    def add_new_content(self, category: Category, content: Content) -> ItemJob[Content]:
        return self._item_job(Content, "content/add", method="POST", form=self._content_form(category, content))

    def edit_content(self, category: Category, content_id: str, content: Content) -> ItemJob[Content]:
        return self._item_job(Content, f"content/edit/{content_id}", method="POST",
                              form=self._content_form(category, content))

    def delete_content(self, content_id: str) -> PostJob:
        return self._post_job(f"content/delete/{content_id}", [("contentid", content_id)])

    def set_download_file(self, content_id: str, file_name: str, payload: bytes) -> PostJob:
        return self._post_job(f"content/uploaddownload/{content_id}",
                              files={"localfile": FileUpload(file_name, payload)})

    def delete_download_file(self, content_id: str) -> PostJob:
        return self._post_job(f"content/deletedownload/{content_id}", [("contentid", content_id)])

    def set_preview_image(self, content_id: str, preview_id: str, file_name: str, image: bytes) -> PostJob:
        return self._post_job(
            f"content/uploadpreview/{content_id}/{preview_id}",
            [("contentid", content_id), ("previewid", preview_id)],
            files={"localfile": FileUpload(file_name, image)},
        )

    def delete_preview_image(self, content_id: str, preview_id: str) -> PostJob:
        return self._post_job(f"content/deletepreview/{content_id}/{preview_id}",
                              [("contentid", content_id), ("previewid", preview_id)])

    def vote_for_content(self, content_id: str, vote: Union[bool, int]) -> PostJob:
        """Vote good/bad with a bool, or rate 0..100 with an int."""
        if isinstance(vote, bool):
            value = "good" if vote else "bad"
        else:
            _check_rating(vote)
            value = str(vote)
        return self._post_job(f"content/vote/{content_id}", [("vote", value)])

    def download_link(self, content_id: str, item_id: str) -> ItemJob[DownloadItem]:
        return self._item_job(DownloadItem, f"content/download/{content_id}/{item_id}")

    # -- fans --------------------------------------------------------------

    def become_fan(self, content_id: str) -> PostJob:
        return self._post_job(f"fan/add/{content_id}", [("contentid", content_id)])

    def request_fans(self, content_id: str, page: int = 0, page_size: Optional[int] = None) -> ListJob[Person]:
        return self._list_job(Person, f"fan/data/{content_id}", [("contentid", content_id)] + _paging(page, page_size))

    # -- knowledge base ----------------------------------------------------

    def request_knowledge_base_entry(self, entry_id: str) -> ItemJob[KnowledgeBaseEntry]:
        return self._item_job(KnowledgeBaseEntry, f"knowledgebase/data/{entry_id}")

    def search_knowledge_base(self, content: Optional[Union[Content, str]] = None, search: str = "",
                              sort_mode: SortMode = SortMode.NEWEST, page: int = 0,
                              page_size: Optional[int] = None) -> ListJob[KnowledgeBaseEntry]:
        params = []
        content_id = content.id if isinstance(content, Content) else content
        if content_id:
            params.append(("content", content_id))
        params.append(("search", search))
        sort_mode = SortMode(sort_mode)
        # the knowledge base has no download counter
        if sort_mode is SortMode.DOWNLOADS:
            sort_mode = SortMode.NEWEST
        params.append(("sortmode", sort_mode.value))
        return self._list_job(KnowledgeBaseEntry, "knowledgebase/data", params + _paging(page, page_size))

    # -- events ------------------------------------------------------------

    def request_event(self, event_id: str) -> ItemJob[Event]:
        return self._item_job(Event, f"event/data/{event_id}")

    def search_events(self, country: str = "", search: str = "", start_at: Optional[date] = None,
                      sort_mode: SortMode = SortMode.NEWEST, page: int = 0,
                      page_size: Optional[int] = None) -> ListJob[Event]:
        params = []
        if search:
            params.append(("search", search))
        sort_mode = SortMode(sort_mode)
        if sort_mode in (SortMode.NEWEST, SortMode.ALPHABETICAL):
            params.append(("sortmode", sort_mode.value))
        if country:
            params.append(("country", country))
        params.append(("startat", start_at.isoformat() if start_at is not None else ""))
        return self._list_job(Event, "event/data", params + _paging(page, page_size))

    # -- comments ----------------------------------------------------------

    def request_comments(self, comment_type: CommentType, object_id: str, object_id2: str = "0",
                         page: int = 0, page_size: Optional[int] = None) -> ListJob[Comment]:
        kind = CommentType(comment_type).value
        return self._list_job(Comment, f"comments/data/{kind}/{object_id}/{object_id2}", _paging(page, page_size))

    def add_new_comment(self, comment_type: CommentType, object_id: str, object_id2: str, parent_id: str,
                        subject: str, message: str) -> ItemJob[Comment]:
        form = [
            ("type", CommentType(comment_type).value),
            ("content", object_id),
            ("content2", object_id2),
            ("parent", parent_id),
            ("subject", subject),
            ("message", message),
        ]
        return self._item_job(Comment, "comments/add", method="POST", form=form)

    def vote_for_comment(self, comment_id: str, rating: int) -> PostJob:
        _check_rating(rating)
        return self._post_job(f"comments/vote/{comment_id}", [("vote", str(rating))])

    # -- private data ------------------------------------------------------

    def set_private_data(self, app: str, key: str, value: str) -> PostJob:
        return self._post_job(f"privatedata/setattribute/{app}/{key}", [("value", value)])

    def request_private_data(self, app: str, key: str) -> ItemJob[PrivateData]:
        return self._item_job(PrivateData, f"privatedata/getattribute/{app}/{key}")

    # -- build service -----------------------------------------------------

    @staticmethod
    def _project_form(project: Project) -> List[Tuple[str, str]]:
        fields = [
            ("name", project.name),
            ("summary", project.summary),
            ("description", project.description),
            ("url", project.url),
            ("developers", "\n".join(project.developers)),
            ("version", project.version),
            ("license", project.license),
            ("requirements", project.requirements),
            ("specfile", project.spec_file),
        ]
        return [(key, value) for key, value in fields if value]

    def request_projects(self) -> ListJob[Project]:
        return self._list_job(Project, "buildservice/project/list")

    def request_project(self, project_id: str) -> ItemJob[Project]:
        return self._item_job(Project, f"buildservice/project/get/{project_id}")

    def create_project(self, project: Project) -> PostJob:
        return self._post_job("buildservice/project/create", self._project_form(project))

    def edit_project(self, project: Project) -> PostJob:
        return self._post_job(f"buildservice/project/edit/{project.id}", self._project_form(project))

    def delete_project(self, project: Project) -> PostJob:
        return self._post_job(f"buildservice/project/delete/{project.id}", self._project_form(project))

    def request_build_service(self, build_service_id: str) -> ItemJob[BuildService]:
        return self._item_job(BuildService, f"buildservice/buildservices/get/{build_service_id}")

    def request_build_services(self) -> ListJob[BuildService]:
        return self._list_job(BuildService, "buildservice/buildservices/list")

    def request_build_service_job(self, job_id: str) -> ItemJob[BuildServiceJob]:
        return self._item_job(BuildServiceJob, f"buildservice/jobs/get/{job_id}")

    def request_build_service_jobs(self, project: Project) -> ListJob[BuildServiceJob]:
        return self._list_job(BuildServiceJob, f"buildservice/jobs/list/{project.id}")

    def create_build_service_job(self, job: BuildServiceJob) -> PostJob:
        return self._post_job(f"buildservice/jobs/create/{job.project_id}/{job.build_service_id}/{job.target}")

    def cancel_build_service_job(self, job: BuildServiceJob) -> PostJob:
        return self._post_job(f"buildservice/jobs/cancel/{job.id}")

    def request_publisher(self, publisher_id: str) -> ItemJob[Publisher]:
        return self._item_job(Publisher, f"buildservice/publishing/getpublisher/{publisher_id}")

    def request_publishers(self) -> ListJob[Publisher]:
        return self._list_job(Publisher, "buildservice/publishing/getpublishingcapabilities")

    def publish_build_job(self, build_job: BuildServiceJob, publisher: Publisher) -> PostJob:
        return self._post_job(f"buildservice/publishing/publishtargetresult/{build_job.id}/{publisher.id}")

    @staticmethod
    def _remote_account_form(account: RemoteAccount) -> List[Tuple[str, str]]:
        return [
            ("login", account.login),
            ("password", account.password),
            ("type", account.type),
            ("typeid", account.remote_service_id),
            ("data", account.data),
        ]

    def request_remote_accounts(self) -> ListJob[RemoteAccount]:
        return self._list_job(RemoteAccount, "buildservice/remoteaccounts/list/")

    def request_remote_account(self, account_id: str) -> ItemJob[RemoteAccount]:
        return self._item_job(RemoteAccount, f"buildservice/remoteaccounts/get/{account_id}")

    def create_remote_account(self, account: RemoteAccount) -> PostJob:
        return self._post_job("buildservice/remoteaccounts/add", self._remote_account_form(account))

    def edit_remote_account(self, account: RemoteAccount) -> PostJob:
        return self._post_job(f"buildservice/remoteaccounts/edit/{account.id}", self._remote_account_form(account))

    def delete_remote_account(self, account_id: str) -> PostJob:
        return self._post_job(f"buildservice/remoteaccounts/remove/{account_id}")
