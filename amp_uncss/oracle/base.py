"""
Presence oracle interface.

Answers "how many elements match this selector" against one DOM. Lookups
fail soft: any error is logged and reported as FAIL_SOFT_COUNT so the rule
behind an ambiguous selector is kept rather than deleted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..diagnostics import get_logger
from ..exceptions import OracleFailure

logger = get_logger(__name__)

FAIL_SOFT_COUNT = 1


@dataclass
class ElementInfo:
    """id/class metadata of one matched element"""
    id: str = ""
    class_name: str = ""

    @property
    def classes(self) -> List[str]:
        return self.class_name.split()


class PresenceOracle(ABC):
    """Capability shared by the static and dynamic backends"""

    name = "oracle"

    async def count(self, selector: str) -> int:
        """Number of elements matching selector; FAIL_SOFT_COUNT on any lookup error."""
        try:
            self._check(selector)
            return await self._count(selector)
        except Exception as e:
            logger.warning(f"[{self.name}] count({selector!r}) failed, keeping selector: {e}")
            return FAIL_SOFT_COUNT

    async def query_all(self, selector: str) -> Optional[List[ElementInfo]]:
        """Metadata for every matching element, or None when the lookup failed."""
        try:
            self._check(selector)
            return await self._query_all(selector)
        except Exception as e:
            logger.warning(f"[{self.name}] query_all({selector!r}) failed: {e}")
            return None

    async def shutdown(self) -> None:
        """Release backend resources."""
        return None

    @staticmethod
    def _check(selector: str) -> None:
        if not isinstance(selector, str) or not selector.strip():
            raise OracleFailure(f"expected a non-empty selector string, got {selector!r}")

    @abstractmethod
    async def _count(self, selector: str) -> int:
        ...

    @abstractmethod
    async def _query_all(self, selector: str) -> List[ElementInfo]:
        ...
