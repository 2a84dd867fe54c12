import functools
from collections.abc import Callable
from typing import Optional


__all__ = ['UrlCacheKeys']


def prefix_key(func: Callable) -> Callable:
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> str:
        key = func(self, *args, **kwargs)
        return f'{self.prefix}:{key}' if self.prefix else key

    return wrapper


class UrlCacheKeys:
    """Standardized cache keys for the URL key spaces.

    These names must stay stable for cached state to survive restarts.
    An optional prefix namespaces all keys (e.g. "shortlink:prod").
    """

    def __init__(self, prefix: Optional[str] = None):
        if prefix is not None and not isinstance(prefix, str):
            raise TypeError(f'Prefix must be of type string (given type: {type(prefix)}).')

        self.prefix = prefix or None

    @prefix_key
    def url_key(self, url_id: int) -> str:
        return f'id:{int(url_id)}'

    @prefix_key
    def short_code_key(self, short_code: str) -> str:
        return f'shortcode_mapping:{short_code}'

    @prefix_key
    def user_urls_key(self, owner_id: str) -> str:
        return f'user:{owner_id}'

    @prefix_key
    def clicks_key(self, short_code: str) -> str:
        return f'clicks:{short_code}'
