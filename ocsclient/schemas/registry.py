from typing import Dict, Type, Union

from ocsclient.schemas.base import Entity
from ocsclient.schemas.buildservice import BuildService, BuildServiceJob, Project, Publisher, RemoteAccount
from ocsclient.schemas.content import (
    Category,
    Comment,
    Content,
    Distribution,
    DownloadItem,
    HomePageType,
    Icon,
    KnowledgeBaseEntry,
    License,
    Video,
)
from ocsclient.schemas.social import AccountBalance, Activity, Event, Folder, Message, Person, PrivateData

ENTITY_TYPES: Dict[str, Type[Entity]] = {
    cls.type_tag: cls
    for cls in (
        AccountBalance,
        Activity,
        BuildService,
        BuildServiceJob,
        Category,
        Comment,
        Content,
        Distribution,
        DownloadItem,
        Event,
        Folder,
        HomePageType,
        Icon,
        KnowledgeBaseEntry,
        License,
        Message,
        Person,
        PrivateData,
        Project,
        Publisher,
        RemoteAccount,
        Video,
    )
}


def resolve_entity_type(entity_type: Union[str, Type[Entity], None]):
    """Accept either an entity class or its registered type tag."""
    if entity_type is None or isinstance(entity_type, type):
        return entity_type
    try:
        return ENTITY_TYPES[entity_type]
    except KeyError:
        raise ValueError(f"Unknown entity type tag {entity_type!r}") from None
