"""Iterate over every item of a paginated listing."""

from gitlab_client.request_options import (
    with_keyset_pagination_parameters,
    with_offset_pagination_parameters,
)


def scan(fetch):
    """Yield items from successive pages.

    ``fetch(page_option)`` must perform the list call with ``page_option``
    appended to its request options (it is None for the first page) and
    return ``(items, response)``. Keyset ``next`` links win over the
    ``X-Next-Page`` header. Errors propagate to the iterating caller after
    the items of earlier pages have been yielded.
    """
    option = None
    while True:
        items, resp = fetch(option)
        yield from items
        if resp.next_link:
            option = with_keyset_pagination_parameters(resp.next_link)
        elif resp.next_page:
            option = with_offset_pagination_parameters(resp.next_page)
        else:
            return


def scan_and_collect(fetch):
    return list(scan(fetch))
