from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    user: str
    password: str = field(default="", repr=False)

    def __bool__(self) -> bool:
        # an empty user name means anonymous access
        return bool(self.user)
