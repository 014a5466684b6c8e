from typing import Protocol

from modpack_sync.domain.json_types import JsonDict
from modpack_sync.domain.pack import PackIndex
from modpack_sync.domain.result import Result


class PolicyEnginePort(Protocol):
    def validate_index(self, raw: JsonDict) -> Result[PackIndex]: ...
