"""
Best-effort extraction of prayer times from the source page.

The source site's markup changes without notice, so nothing here depends on a
particular DOM structure. Prayer names are found by their Arabic spelling and the
nearest H:MM / HH:MM text is taken as the time. Whatever cannot be found is simply
missing from the result; the scraper fills those keys with fallback times.
"""
import logging
from typing import Dict, Iterator, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .prayers import Prayer, find_time, match_prayer_name

logger = logging.getLogger(__name__)

_IGNORED_PARENTS = frozenset({"script", "style", "noscript", "template", "head", "title"})


def _text_nodes(root: Tag) -> Iterator[NavigableString]:
    """Visible text nodes under root, in document order."""
    for node in root.find_all(string=True):
        if isinstance(node, Comment):
            continue
        if node.parent is not None and node.parent.name in _IGNORED_PARENTS:
            continue
        if node.strip():
            yield node


def _time_near(node: NavigableString) -> Optional[str]:
    """First time in the node itself, else in its element's parent's descendants."""
    found = find_time(str(node))
    if found:
        return found
    element = node.parent
    if element is None:
        return None
    scope = element.parent if element.parent is not None else element
    for text in _text_nodes(scope):
        found = find_time(str(text))
        if found:
            return found
    return None


def _extract_from_text(soup: BeautifulSoup, times: Dict[str, str]) -> None:
    for node in _text_nodes(soup):
        prayers = [p for p in match_prayer_name(str(node)) if p.value not in times]
        if not prayers:
            continue
        found = _time_near(node)
        if not found:
            continue
        for prayer in prayers:
            logger.debug(f"Found {prayer.value} = {found} near {str(node).strip()!r}")
            times.setdefault(prayer.value, found)
        if len(times) == len(Prayer):
            return


def _extract_from_tables(soup: BeautifulSoup, times: Dict[str, str]) -> None:
    for row in soup.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) < 2:
            continue
        name_text = cells[0].get_text(strip=True)
        time_text = cells[1].get_text(strip=True)
        found = find_time(time_text)
        if not found:
            continue
        for prayer in match_prayer_name(name_text):
            if prayer.value not in times:
                logger.debug(f"Found {prayer.value} = {found} in table row")
                times[prayer.value] = found


def extract(html: Optional[str]) -> Dict[str, str]:
    """Extract {prayer_key: "H:MM"} from raw HTML.

    Returns any subset of the five canonical keys (possibly empty). Never raises;
    the first time found for a prayer wins and later occurrences are ignored.
    """
    times: Dict[str, str] = {}
    if not html or not isinstance(html, str):
        return times
    try:
        soup = BeautifulSoup(html, "html.parser")
        _extract_from_text(soup, times)
        if len(times) < len(Prayer):
            _extract_from_tables(soup, times)
    except Exception as e:
        logger.error(f"Error extracting prayer times from page: {e}", exc_info=True)
    return {prayer.value: times[prayer.value] for prayer in Prayer if prayer.value in times}
