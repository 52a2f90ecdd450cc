import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ocsclient.models.enums import DownloadType
from ocsclient.schemas.base import Entity, wire_text

# numbered wire key prefix -> (Content attribute, attribute of the list entry)
NUMBERED_KEYS = {
    "homepage": ("homepages", "url"),
    "homepagetype": ("homepages", "type"),
    "preview": ("previews", "page_url"),
    "previewpic": ("previews", "image_url"),
    "smallpreviewpic": ("previews", "small_image_url"),
    "downloadway": ("download_descriptions", "way"),
    "downloadtype": ("download_descriptions", "type"),
    "downloadprice": ("download_descriptions", "price"),
    "downloadlink": ("download_descriptions", "link"),
    "downloadname": ("download_descriptions", "name"),
    "downloadsize": ("download_descriptions", "size"),
    "downloadgpgsignature": ("download_descriptions", "gpg_signature"),
    "downloadgpgfingerprint": ("download_descriptions", "gpg_fingerprint"),
    "downloadpackagename": ("download_descriptions", "package_name"),
    "downloadrepository": ("download_descriptions", "repository"),
}
# the first homepage is sent without a number
UNNUMBERED_FIRST = ("homepage", "homepagetype")

_NUMBERED_KEY = re.compile(r"^([a-z]+?)(\d+)$")


def numbered_key(key: str):
    """Split ``downloadlink2`` into ``("downloadlink", 2)``; None if not a numbered key."""
    if key in UNNUMBERED_FIRST:
        return key, 1
    match = _NUMBERED_KEY.match(key)
    if match is None or match.group(1) not in NUMBERED_KEYS:
        return None
    return match.group(1), int(match.group(2))


class Icon(Entity):
    type_tag = "icon"
    xml_elements = ("icon",)
    text_key = "link"

    width: int = 0
    height: int = 0
    url: str = Field("", alias="link")


class Category(Entity):
    type_tag = "category"
    xml_elements = ("category",)

    name: str = ""


class Distribution(Entity):
    type_tag = "distribution"
    xml_elements = ("distribution",)

    name: str = ""


class License(Entity):
    type_tag = "license"
    xml_elements = ("license",)

    name: str = ""
    url: str = Field("", alias="link")


class HomePageType(Entity):
    type_tag = "homepagetype"
    xml_elements = ("homepagetype",)

    name: str = ""


class Video(Entity):
    type_tag = "video"
    xml_elements = ("video",)
    text_key = "link"

    url: str = Field("", alias="link")


class HomePage(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    type: str = ""
    url: str = ""


class Preview(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    page_url: str = ""
    image_url: str = ""
    small_image_url: str = ""


class DownloadDescription(BaseModel):
    """One of the numbered ``download*N`` groups of a content record."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    way: int = 0
    type: str = ""
    price: float = 0.0
    link: str = ""
    name: str = ""
    size: int = 0
    gpg_signature: str = ""
    gpg_fingerprint: str = ""
    package_name: str = ""
    repository: str = ""

    @property
    def download_type(self) -> DownloadType:
        return DownloadType(self.way)


class Content(Entity):
    type_tag = "content"
    xml_elements = ("content",)
    nested = {"icon": Icon, "video": Video}
    derived = ("homepages", "previews", "download_descriptions")

    name: str = ""
    version: str = ""
    summary: str = ""
    description: str = ""
    changelog: str = ""
    language: str = ""
    type_id: str = Field("", alias="typeid")
    type_name: str = Field("", alias="typename")
    person_id: str = Field("", alias="personid")
    downloads: int = 0
    rating: int = Field(0, alias="score")
    comments: int = 0
    created: Optional[datetime] = None
    updated: Optional[datetime] = Field(None, alias="changed")
    detail_page: str = Field("", alias="detailpage")
    icons: List[Icon] = Field(default_factory=list, alias="icon")
    videos: List[Video] = Field(default_factory=list, alias="video")
    homepages: List[HomePage] = Field(default_factory=list)
    previews: List[Preview] = Field(default_factory=list)
    download_descriptions: List[DownloadDescription] = Field(default_factory=list)

    @classmethod
    def _recognizes(cls, key):
        return numbered_key(key) is not None

    @classmethod
    def _prepare(cls, known: Dict[str, Any]) -> Dict[str, Any]:
        values = super()._prepare(known)
        groups: Dict[str, Dict[int, Dict[str, Any]]] = {name: {} for name in cls.derived}
        for key, value in known.items():
            numbered = numbered_key(key)
            if numbered is None or value is None or value == "":
                continue
            prefix, index = numbered
            group, attribute = NUMBERED_KEYS[prefix]
            groups[group].setdefault(index, {})[attribute] = value
        for group, entries in groups.items():
            values[group] = [entries[index] for index in sorted(entries)]
        return values

    def to_fields(self) -> Dict[str, str]:
        out = super().to_fields()
        for prefix, (group, attribute) in NUMBERED_KEYS.items():
            for index, entry in enumerate(getattr(self, group), start=1):
                text = wire_text(getattr(entry, attribute))
                if not text:
                    continue
                key = prefix if index == 1 and prefix in UNNUMBERED_FIRST else f"{prefix}{index}"
                out[key] = text
        return out


class Comment(Entity):
    type_tag = "comment"
    xml_elements = ("comment",)

    subject: str = ""
    text: str = ""
    child_count: int = Field(0, alias="childcount")
    user: str = ""
    date: Optional[datetime] = None
    score: int = 0
    children: List["Comment"] = Field(default_factory=list)

    @classmethod
    def nested_types(cls):
        return {"children": cls}


class DownloadItem(Entity):
    type_tag = "downloaditem"
    xml_elements = ("content",)

    way: int = Field(0, alias="downloadway")
    url: str = Field("", alias="downloadlink")
    mime_type: str = Field("", alias="mimetype")
    package_name: str = Field("", alias="packagename")
    package_repository: str = Field("", alias="packagerepository")
    gpg_signature: str = Field("", alias="gpgsignature")
    gpg_fingerprint: str = Field("", alias="gpgfingerprint")

    @property
    def type(self) -> DownloadType:
        return DownloadType(self.way)


class KnowledgeBaseEntry(Entity):
    type_tag = "knowledgebaseentry"
    xml_elements = ("content",)

    content_id: str = Field("", alias="contentid")
    user: str = ""
    status: str = ""
    changed: Optional[datetime] = None
    name: str = ""
    description: str = ""
    answer: str = ""
    comments: int = 0
    detail_page: str = Field("", alias="detailpage")
