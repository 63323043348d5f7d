import urllib.parse as up
from typing import Optional

MAX_REF_LEN = 80

def truncate(s:str, n:int=MAX_REF_LEN)->str:
    return (s or '')[:n]

def is_absolute_http_url(url:str)->bool:
    try:
        u = up.urlsplit(url)
        u.port
    except ValueError:
        return False
    return u.scheme.lower() in ("http", "https") and bool(u.hostname)

def origin_of(url:str)->Optional[str]:
    """scheme://host[:port] of an absolute URL, default ports dropped."""
    try:
        u = up.urlsplit(url)
        port = u.port
    except ValueError:
        return None
    if not u.scheme or not u.hostname:
        return None
    scheme = u.scheme.lower()
    host = u.hostname
    if ':' in host:
        host = f"[{host}]"
    if port and not ((scheme == 'http' and port == 80) or (scheme == 'https' and port == 443)):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"

def resolve_href(base:str, href:str)->Optional[str]:
    # None when the href cannot be turned into a URL
    try:
        absu = up.urljoin(base, href.strip())
        up.urlsplit(absu).port
    except ValueError:
        return None
    return absu

def same_origin(a:str, b:str)->bool:
    oa = origin_of(a)
    return oa is not None and oa == origin_of(b)

def _with_host(u:up.SplitResult, host:str, scheme:Optional[str]=None)->str:
    netloc = host
    if u.port:
        netloc = f"{host}:{u.port}"
    if u.username:
        cred = u.username + (f":{u.password}" if u.password else '')
        netloc = f"{cred}@{netloc}"
    return up.urlunsplit((scheme or u.scheme, netloc, u.path or '/', u.query, u.fragment))

def www_variants(url:str)->dict:
    """www, non-www and plain-http counterparts of ``url``.

    A variant equals the (path-normalized) original when it does not apply,
    e.g. the www variant of a host that already starts with ``www``.
    """
    u = up.urlsplit(url)
    host = (u.hostname or '').lower()
    # any host beginning with "www" (e.g. wwwshop.com) counts as already-www
    www = host if host.startswith('www') else f"www.{host}"
    non_www = host[4:] if host.startswith('www.') else host
    scheme = u.scheme.lower()
    return {
        'original': _with_host(u, host),
        'www': _with_host(u, www),
        'non-www': _with_host(u, non_www),
        'http': _with_host(u, host, 'http' if scheme == 'https' else scheme),
    }
