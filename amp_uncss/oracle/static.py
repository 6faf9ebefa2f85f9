"""
Static presence oracle - soupsieve queries over the in-process (stubbed) DOM
"""

from typing import List

from bs4 import BeautifulSoup, Tag

from .base import ElementInfo, PresenceOracle


def element_info(el: Tag) -> ElementInfo:
    classes = el.get("class", [])
    if not isinstance(classes, str):
        classes = " ".join(classes)
    return ElementInfo(id=str(el.get("id", "")), class_name=classes)


class StaticOracle(PresenceOracle):
    name = "static"

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    async def _count(self, selector: str) -> int:
        return len(self.soup.select(selector))

    async def _query_all(self, selector: str) -> List[ElementInfo]:
        return [element_info(el) for el in self.soup.select(selector)]
