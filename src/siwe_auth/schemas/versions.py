from enum import Enum
from typing import List


class MessageVersion(Enum):
    Version1 = "1"


class SupportedVersions:
    versions_list: List[MessageVersion] = [MessageVersion.Version1]

    @classmethod
    def is_supported(cls, value: str) -> bool:
        return any(version.value == value for version in cls.versions_list)
