"""In-memory filtering, search, ordering and paging over a list of icons.

Mirrors the SQL store's query semantics so both stores answer a listing
query with the same page.
"""

import logging

from cloudicons.schemas import ALL_PROVIDERS, Icon, IconPage, IconQuery

logger = logging.getLogger(__name__)


def filter_by_provider(icons: list[Icon], provider: str) -> list[Icon]:
    if provider.lower() == ALL_PROVIDERS:
        return icons
    wanted = provider.lower()
    return [icon for icon in icons if icon.provider.lower() == wanted]


def search_icons(icons: list[Icon], search_query: str | None = None) -> list[Icon]:
    """Case-insensitive substring match on name, description, id and tags."""
    if not search_query:
        return icons

    query = search_query.lower().strip()
    if not query:
        return icons

    matches = [
        icon for icon in icons
        if query in icon.display_name.lower()
        or query in icon.description.lower()
        or query in icon.id.lower()
        or any(query in tag.lower() for tag in icon.tags)
    ]
    logger.debug("Search results | query=%s | count=%d", query, len(matches))
    return matches


def filter_by_tags(icons: list[Icon], tags: list[str]) -> list[Icon]:
    """Keep icons carrying at least one of `tags`."""
    if not tags:
        return icons
    wanted = {t.lower() for t in tags}
    return [icon for icon in icons if any(t.lower() in wanted for t in icon.tags)]


def sort_icons(icons: list[Icon]) -> list[Icon]:
    return sorted(icons, key=lambda i: (i.provider, i.display_name, i.id))


def apply_query(icons: list[Icon], query: IconQuery) -> IconPage:
    selected = filter_by_provider(icons, query.provider)
    selected = search_icons(selected, query.search)
    selected = filter_by_tags(selected, query.tags)
    selected = sort_icons(selected)

    start = query.offset
    return IconPage(
        items=selected[start:start + query.page_size],
        total=len(selected),
        page=query.page,
        page_size=query.page_size,
    )


def find_icon(icons: list[Icon], provider: str, icon_id: str) -> Icon | None:
    key = (provider.lower(), icon_id.lower())
    return next((icon for icon in icons if icon.key == key), None)


def distinct_providers(icons: list[Icon]) -> list[str]:
    return sorted({icon.provider.lower() for icon in icons})


def distinct_tags(icons: list[Icon]) -> list[str]:
    return sorted({tag for icon in icons for tag in icon.tags})
