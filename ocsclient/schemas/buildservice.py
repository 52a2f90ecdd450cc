from typing import Any, Dict, List, Mapping

from pydantic import Field

from ocsclient.schemas.base import Entity


class Project(Entity):
    type_tag = "project"
    xml_elements = ("project",)

    name: str = ""
    version: str = ""
    license: str = ""
    url: str = ""
    summary: str = ""
    description: str = ""
    developers: List[str] = Field(default_factory=list)
    requirements: str = ""
    spec_file: str = Field("", alias="specfile")

    @classmethod
    def _prepare(cls, known: Dict[str, Any]) -> Dict[str, Any]:
        values = super()._prepare(known)
        developers = values.get("developers")
        if isinstance(developers, str):
            values["developers"] = [line for line in developers.splitlines() if line.strip()]
        elif isinstance(developers, Mapping) and len(developers) == 1:
            # <developers><developer>..</developer></developers>
            inner = next(iter(developers.values()))
            values["developers"] = inner if isinstance(inner, list) else [inner]
        return values


class BuildService(Entity):
    type_tag = "buildservice"
    xml_elements = ("buildservice",)

    name: str = ""
    url: str = ""


class BuildServiceJob(Entity):
    type_tag = "buildservicejob"
    xml_elements = ("buildjob",)

    name: str = ""
    project_id: str = Field("", alias="project")
    build_service_id: str = Field("", alias="buildservice")
    target: str = ""
    status: int = 0
    progress: float = 0.0
    url: str = ""
    message: str = ""

    @property
    def is_running(self) -> bool:
        return self.status == 1

    @property
    def is_completed(self) -> bool:
        return self.status == 2

    @property
    def is_failed(self) -> bool:
        return self.status == 3


class Publisher(Entity):
    type_tag = "publisher"
    xml_elements = ("publisher",)

    name: str = ""
    url: str = ""


class RemoteAccount(Entity):
    type_tag = "remoteaccount"
    xml_elements = ("remoteaccount",)

    type: str = ""
    remote_service_id: str = Field("", alias="typeid")
    data: str = ""
    login: str = ""
    password: str = Field("", repr=False)
