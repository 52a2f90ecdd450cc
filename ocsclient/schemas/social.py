from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import Field

from ocsclient.models.enums import MessageStatus
from ocsclient.schemas.base import Entity


class Person(Entity):
    type_tag = "person"
    xml_elements = ("person",)

    id: str = Field("", alias="personid")
    first_name: str = Field("", alias="firstname")
    last_name: str = Field("", alias="lastname")
    birthday: Optional[date] = None
    city: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    avatar_url: str = Field("", alias="avatarpic")
    homepage: str = ""


class AccountBalance(Entity):
    type_tag = "accountbalance"
    xml_elements = ("person",)

    balance: str = ""
    currency: str = ""


class Activity(Entity):
    """One entry of a person's activity stream.

    The wire format flattens the author into the activity record, so the
    person keys are recognized here and folded into ``associated_person``.
    """

    type_tag = "activity"
    xml_elements = ("activity",)
    derived = ("associated_person",)
    extra_wire_keys = ("personid", "firstname", "lastname", "avatarpic")

    associated_person: Person = Field(default_factory=Person)
    timestamp: Optional[datetime] = None
    type: int = 0
    message: str = ""
    link: str = ""

    @classmethod
    def _prepare(cls, known: Dict[str, Any]) -> Dict[str, Any]:
        values = super()._prepare(known)
        person_fields = {key: known[key] for key in cls.extra_wire_keys if key in known}
        values["associated_person"] = Person.from_fields(person_fields)
        return values


class Folder(Entity):
    type_tag = "folder"
    xml_elements = ("folder",)

    name: str = ""
    message_count: int = Field(0, alias="messagecount")
    type: str = ""


class Message(Entity):
    type_tag = "message"
    xml_elements = ("message",)

    sender: str = Field("", alias="messagefrom")
    recipient: str = Field("", alias="messageto")
    sent: Optional[datetime] = Field(None, alias="senddate")
    status: int = 0
    subject: str = ""
    body: str = ""

    @property
    def message_status(self) -> MessageStatus:
        return MessageStatus(self.status)


class Event(Entity):
    type_tag = "event"
    xml_elements = ("event",)

    name: str = ""
    description: str = ""
    user: str = ""
    start_date: Optional[date] = Field(None, alias="startdate")
    end_date: Optional[date] = Field(None, alias="enddate")
    latitude: float = 0.0
    longitude: float = 0.0
    homepage: str = ""
    country: str = ""
    city: str = ""


class PrivateData(Entity):
    type_tag = "privatedata"
    xml_elements = ("attribute",)

    app: str = ""
    key: str = ""
    value: str = ""
    timestamp: Optional[datetime] = None
