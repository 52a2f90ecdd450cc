from enum import Enum, IntEnum

class JobStatus(str, Enum):
    CREATED = "CREATED"
    RUNNING = "RUNNING"
    DECODING = "DECODING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

class WireFormat(str, Enum):
    XML = "xml"
    JSON = "json"

class SortMode(str, Enum):
    NEWEST = "new"
    ALPHABETICAL = "alpha"
    RATING = "high"
    DOWNLOADS = "down"

class CommentType(str, Enum):
    CONTENT = "1"
    FORUM = "4"
    KNOWLEDGEBASE = "7"
    EVENT = "8"

class MessageStatus(IntEnum):
    UNREAD = 0
    READ = 1
    ANSWERED = 2

class DownloadType(IntEnum):
    FILE = 0
    LINK = 1
    PACKAGE = 2
