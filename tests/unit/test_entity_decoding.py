from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import Field

from ocsclient.errors import ParseError
from ocsclient.schemas.base import Entity
from ocsclient.schemas.buildservice import Project
from ocsclient.models.enums import DownloadType
from ocsclient.schemas.content import Comment, Content, Icon, Video, numbered_key
from ocsclient.schemas.registry import ENTITY_TYPES, resolve_entity_type
from ocsclient.schemas.social import Activity, Person


class Named(Entity):
    type_tag = "named"
    xml_elements = ("named",)

    name: str = ""


class Counted(Entity):
    count: int = Field(0, alias="total")


def test_unknown_fields_go_to_extended_attributes():
    item = Named.from_fields({"id": "42", "name": "X", "unknownfield": "Y"})
    assert item.id == "42"
    assert item.name == "X"
    assert item.extended_attributes == {"unknownfield": "Y"}


def test_field_names_lists_wire_keys():
    assert Named.field_names() == ("id", "name")
    assert "personid" in Person.field_names()
    assert "first_name" not in Person.field_names()


def test_missing_and_null_fields_get_zero_values():
    item = Counted.from_fields({"id": 7, "total": None})
    assert item.id == "7"
    assert item.count == 0
    assert Counted.from_fields({"total": ""}).count == 0


def test_unknown_non_text_values_are_kept_as_json():
    item = Named.from_fields({"flag": True, "size": 3, "nothing": None, "tree": {"a": "b"}})
    assert item.extended_attributes == {"flag": "true", "size": "3", "nothing": "", "tree": '{"a":"b"}'}


def test_large_numeric_id_stays_exact():
    item = Named.from_fields({"id": 123456789012345678901234567890})
    assert item.id == "123456789012345678901234567890"


def test_bad_value_for_recognized_field_is_a_parse_error():
    with pytest.raises(ParseError):
        Counted.from_fields({"total": "many"})


def test_non_mapping_record_is_a_parse_error():
    with pytest.raises(ParseError):
        Named.from_fields("just text")


def test_content_decodes_icons_recursively():
    content = Content.from_fields({
        "id": 100,
        "name": "GradE8",
        "score": 67,
        "downloads": 2,
        "changed": "2001-09-28T18:45:40+02:00",
        "icon": [
            {"width": 16, "height": 16, "link": "https://example.org/icon1.png"},
            {"width": 32, "height": 32, "link": "https://example.org/icon2.png", "dpi": 96},
        ],
        "fans": 22,
    })
    assert content.id == "100"
    assert content.rating == 67
    assert content.updated == datetime(2001, 9, 28, 18, 45, 40, tzinfo=timezone(timedelta(hours=2)))
    assert [icon.width for icon in content.icons] == [16, 32]
    assert content.icons[1].extended_attributes == {"dpi": "96"}
    assert content.extended_attributes == {"fans": "22"}


def test_comment_children_accept_xml_wrapper():
    comment = Comment.from_fields({
        "id": "235",
        "subject": "vxvdfvd",
        "childcount": "1",
        "children": {"comment": {"id": "315", "subject": "Re: vxvdfvd", "score": "40"}},
    })
    assert comment.child_count == 1
    assert len(comment.children) == 1
    assert comment.children[0].id == "315"
    assert comment.children[0].score == 40


def test_activity_builds_associated_person():
    activity = Activity.from_fields({
        "id": 42,
        "personid": "lpapp",
        "firstname": "Laszlo",
        "lastname": "Papp",
        "timestamp": "2008-08-01T20:30:19+02:00",
        "type": 6,
        "message": "updated",
        "details": "full",
    })
    assert activity.associated_person.id == "lpapp"
    assert activity.associated_person.first_name == "Laszlo"
    assert activity.type == 6
    assert activity.extended_attributes == {"details": "full"}


def test_person_birthday_is_a_date():
    person = Person.from_fields({"personid": "frank", "birthday": "1980-02-01", "latitude": "51.5"})
    assert person.birthday == date(1980, 2, 1)
    assert person.latitude == 51.5


def test_project_developers_from_newline_text():
    project = Project.from_fields({"id": "1", "developers": "alice\nbob\n"})
    assert project.developers == ["alice", "bob"]


def test_to_fields_round_trips_extended_attributes():
    content = Content.from_fields({"id": "5", "name": "Theme", "homepage": "https://example.org"})
    fields = content.to_fields()
    assert fields["name"] == "Theme"
    assert fields["homepage"] == "https://example.org"
    assert "icon" not in fields
    assert Content.from_fields(fields).extended_attributes == content.extended_attributes


def test_entities_are_values():
    a = Named.from_fields({"id": "1", "name": "n", "x": "y"})
    b = Named.from_fields({"id": "1", "name": "n", "x": "y"})
    assert a == b
    with pytest.raises(Exception):
        a.name = "other"


def test_registry_resolves_tags():
    assert len(ENTITY_TYPES) >= 20
    assert resolve_entity_type("person") is Person
    assert resolve_entity_type(Content) is Content
    with pytest.raises(ValueError):
        resolve_entity_type("nope")


def test_content_folds_numbered_keys():
    content = Content.from_fields({
        "id": 100,
        "downloads": 2,
        "homepage": "https://en.wikipedia.org/foo111",
        "homepagetype": "Wikipedia",
        "homepage2": None,
        "homepagetype2": None,
        "homepage3": "https://example.org/blog",
        "homepagetype3": "Blog",
        "preview1": "https://example.org/preview.php?id=100",
        "previewpic1": "https://example.org/100-1.jpg",
        "smallpreviewpic1": "https://example.org/m100-1.png",
        "previewpic2": None,
        "downloadway1": 1,
        "downloadtype1": "Fedora",
        "downloadprice1": 0,
        "downloadlink1": "https://example.org/download.php?id=2",
        "downloadname1": "gdfgd22",
        "downloadsize1": 2,
        "downloadpackagename1": "packname",
        "downloadrepository1": "repo",
        "downloadtype2": "Fedora",
        "downloadprice2": 2.99,
        "downloadlink2": "https://example.org/buy.php?id=1",
        "video": [{"link": "https://example.org/video1.mpg"}, {"link": "https://example.org/video2.mpg"}],
        "donationpage": "https://example.org/donate",
    })

    assert content.downloads == 2
    assert [(h.type, h.url) for h in content.homepages] == [
        ("Wikipedia", "https://en.wikipedia.org/foo111"),
        ("Blog", "https://example.org/blog"),
    ]
    assert len(content.previews) == 1
    assert content.previews[0].small_image_url == "https://example.org/m100-1.png"
    first, second = content.download_descriptions
    assert first.download_type is DownloadType.LINK
    assert first.size == 2
    assert first.repository == "repo"
    assert second.price == 2.99
    assert second.link == "https://example.org/buy.php?id=1"
    assert [video.url for video in content.videos] == [
        "https://example.org/video1.mpg",
        "https://example.org/video2.mpg",
    ]
    assert content.extended_attributes == {"donationpage": "https://example.org/donate"}


def test_content_to_fields_writes_numbered_keys_back():
    content = Content.from_fields({
        "id": "5",
        "homepage": "https://a.example.org",
        "homepagetype": "Website",
        "homepage2": "https://b.example.org",
        "downloadlink1": "https://example.org/file.tar.gz",
    })
    fields = content.to_fields()

    assert fields["homepage"] == "https://a.example.org"
    assert fields["homepagetype"] == "Website"
    assert fields["homepage2"] == "https://b.example.org"
    assert fields["downloadlink1"] == "https://example.org/file.tar.gz"
    assert "homepage1" not in fields
    assert Content.from_fields(fields).homepages == content.homepages


@pytest.mark.parametrize(
    "key, expected",
    [
        ("homepage", ("homepage", 1)),
        ("homepagetype10", ("homepagetype", 10)),
        ("smallpreviewpic3", ("smallpreviewpic", 3)),
        ("downloadgpgfingerprint2", ("downloadgpgfingerprint", 2)),
        ("downloads", None),
        ("score2", None),
    ],
)
def test_numbered_key(key, expected):
    assert numbered_key(key) == expected


def test_text_only_sub_entities():
    assert Video.from_fields("https://example.org/v.mpg").url == "https://example.org/v.mpg"
    icon = Icon.from_fields({"width": "16", "#text": "https://example.org/i.png"})
    assert icon.url == "https://example.org/i.png"
    assert icon.extended_attributes == {}


def test_element_text_without_text_key_is_kept():
    item = Named.from_fields({"id": "1", "#text": "loose"})
    assert item.extended_attributes == {"#text": "loose"}
    assert Named.from_fields({"id": "1", "#text": ""}).extended_attributes == {}
