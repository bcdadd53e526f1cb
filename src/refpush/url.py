"""URL reference parsing — authority and path out of a ``Referer`` value.

Splits an absolute (``http://host/p``), protocol-relative (``//host/p``),
or relative (``/p``) reference into an optional authority and a path.
The query string, if any, is dropped.

Parsing is byte scanning only: no decoding, no normalization, and no
copying. Results are ``memoryview`` slices over the caller's buffer.
A read-only ``memoryview`` compares and hashes like the bytes it views,
so results can be compared against ``bytes`` literals directly::

    >>> auth, path = parse_url(b"http://example.com/foo/bar/?x=1")
    >>> auth == b"example.com", path == b"/foo/bar/"
    (True, True)

The parser is total. Anything it cannot interpret comes back as
``(None, b"")``, which fails every downstream eligibility check.
"""

_SLASH = b"/"
_COLON = b":"
_QUESTION = b"?"

_EMPTY = memoryview(b"")


def parse_url(ref: bytes) -> tuple[memoryview | None, memoryview]:
    """Return ``(authority, path)`` views into *ref*.

    Examples::

        b""                                 -> (None, b"")
        b"/"                                -> (None, b"/")
        b"ht"                               -> (None, b"")
        b"http://example.com/foo/bar/"      -> (b"example.com", b"/foo/bar/")
        b"//www.example.com:8080/dir/"      -> (b"www.example.com:8080", b"/dir/")
        b"/path/to/dir/"                    -> (None, b"/path/to/dir/")
    """
    ref = bytes(ref)
    size = len(ref)
    view = memoryview(ref)
    if size == 0:
        return None, _EMPTY
    if size == 1:
        return None, view

    if ref.startswith(_SLASH):
        if ref.startswith(_SLASH, 1):
            return _double_slashed(ref, view, 0)
        return None, _path_from(ref, view, 0)

    colon = ref.find(_COLON)
    if colon < 0:
        return None, _EMPTY
    return _double_slashed(ref, view, colon + 1)


def request_path(raw: bytes) -> bytes:
    """Return a request target with its query string removed.

    Unlike ``parse_url`` this does no authority parsing: a request path
    such as ``//static/app.js`` is kept as-is.
    """
    path, _, _ = bytes(raw).partition(_QUESTION)
    return path


def _double_slashed(
    ref: bytes, view: memoryview, start: int
) -> tuple[memoryview | None, memoryview]:
    """Parse ``//authority/path?query`` beginning at *start*.

    The two bytes at *start* are skipped without inspection; callers
    only get here after a leading ``//`` or a scheme colon.
    """
    if len(ref) - start < 2:
        return None, _EMPTY
    auth_start = start + 2
    path_start = ref.find(_SLASH, auth_start)
    if path_start < 0:
        return None, _EMPTY
    return view[auth_start:path_start], _path_from(ref, view, path_start)


def _path_from(ref: bytes, view: memoryview, start: int) -> memoryview:
    """Slice from *start* up to the first ``?`` (or the end)."""
    question = ref.find(_QUESTION, start)
    if question < 0:
        return view[start:]
    return view[start:question]
