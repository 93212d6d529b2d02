"""General utility functions."""

from __future__ import annotations

from bonsai.utils import escape_filter_exp

__all__ = ["build_filter", "escape_filter_value"]


def escape_filter_value(value: str) -> str:
    """Escape untrusted text for use as a value in an LDAP search filter.

    The characters special in :rfc:`4515` filter values are escaped by
    bonsai, which escapes backslashes first so that the backslashes it
    introduces are never escaped again. ``/`` is also escaped, since search
    filter templates may be reused in contexts where it is significant.

    Parameters
    ----------
    value
        Arbitrary text, such as a username supplied by a user.

    Returns
    -------
    str
        The escaped text.
    """
    return escape_filter_exp(value).replace("/", "\\2F")


def build_filter(template: str, placeholder: str, value: str) -> str:
    """Substitute an escaped value into a search filter template.

    Parameters
    ----------
    template
        Search filter template.
    placeholder
        Literal to replace, such as ``{{username}}``. Every occurrence is
        replaced.
    value
        Unescaped value to substitute.

    Returns
    -------
    str
        The search filter.
    """
    return template.replace(placeholder, escape_filter_value(value))
