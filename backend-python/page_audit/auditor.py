import asyncio, httpx, logging, os, random, re, time
from selectolax.lexbor import LexborHTMLParser
from typing import List, Optional, Tuple
from .models import AuditReport, FetchResult, ImageIssue, LinkIssue, RedirectIssue
from .utils import origin_of, resolve_href, same_origin, truncate, www_variants

logger = logging.getLogger(__name__)

USER_AGENT = os.getenv('AUDIT_USER_AGENT', "PageAudit/1.0 (+https://github.com/page-audit)")
FETCH_TIMEOUT = float(os.getenv('FETCH_TIMEOUT', '15'))
PROBE_TIMEOUT = float(os.getenv('PROBE_TIMEOUT', '10'))
PROBE_CONCURRENCY = int(os.getenv('PROBE_CONCURRENCY', '3'))
LINK_SAMPLE_LIMIT = int(os.getenv('LINK_SAMPLE_LIMIT', '3'))

MAX_IMAGE_ISSUES = 10
OVERSIZE_HINTS = ('large', 'big', 'original')
SLOW_RESPONSE_MS = 3000

MIXED_PATTERNS = [
    re.compile(r'http://(?!localhost)', re.I),
    re.compile(r'<img[^>]+src="http://(?!localhost)', re.I),
    re.compile(r'<script[^>]+src="http://(?!localhost)', re.I),
    re.compile(r'<link[^>]+href="http://(?!localhost)', re.I),
]

def _describe(exc:BaseException)->str:
    return str(exc) or exc.__class__.__name__

async def probe(client, url, method='GET', timeout=None):
    """Single request following redirects; None on any failure."""
    timeout = timeout or PROBE_TIMEOUT
    try:
        return await asyncio.wait_for(client.request(method, url, follow_redirects=True, timeout=timeout), timeout)
    except Exception as e:
        logger.debug("probe %s %s failed: %s", method, url, _describe(e))
        return None

async def fetch_page(client, url, timeout=FETCH_TIMEOUT, clock=time.perf_counter)->FetchResult:
    res = FetchResult(url=url)
    try:
        start = clock()
        r = await asyncio.wait_for(client.get(url, follow_redirects=True, timeout=timeout), timeout)
        end = clock()
    except Exception as e:
        res.error = _describe(e)
        return res
    res.final_url = str(r.url)
    res.status = r.status_code
    res.elapsed_ms = int(round((end - start) * 1000))
    res.content_type = r.headers.get('content-type')
    res.is_https = res.final_url.startswith('https:')
    res.has_hsts = bool(r.headers.get('strict-transport-security'))
    res.text = r.text
    res.body_bytes = len(r.content)
    return res

def has_mixed_content(html:str)->bool:
    return any(p.search(html) for p in MIXED_PATTERNS)

def _missing_alt(node)->bool:
    alt = node.attributes.get('alt')
    return not alt or not alt.strip()

def analyze_markup(report:AuditReport, html:str, base_url:str):
    """Fill the structural fields of ``report``; returns (images, anchors)."""
    tree = LexborHTMLParser(html)
    title = tree.css_first('title')
    report.title = (title.text() if title else '').strip() or None

    has_viewport = False
    for m in tree.css('meta'):
        n = (m.attributes.get('name') or '').lower()
        if n == 'description' and report.meta_description is None:
            report.meta_description = m.attributes.get('content') or None
        elif n == 'viewport':
            has_viewport = True
    report.has_viewport = has_viewport
    report.responsive = has_viewport  # no layout check, viewport only

    report.h1_count = len(tree.css('h1'))

    images = tree.css('img')
    report.total_images = len(images)
    report.img_without_alt = sum(1 for im in images if _missing_alt(im))

    anchors = tree.css('a')
    total = external = 0
    for a in anchors:
        href = a.attributes.get('href') or ''
        if not href:
            total += 1
            continue
        absu = resolve_href(base_url, href)
        if absu is None:
            continue
        total += 1
        if not same_origin(absu, base_url):
            external += 1
    report.total_links = total
    report.external_links = external

    report.scripts_count = len(tree.css('script'))
    report.inline_styles_count = len(tree.css('[style]'))
    report.has_mixed_content = has_mixed_content(html)
    return images, anchors

def inspect_images(images)->List[ImageIssue]:
    issues = []
    for im in images:
        src = im.attributes.get('src') or ''
        issue = ImageIssue(
            src=truncate(src),
            missing_alt=_missing_alt(im),
            missing_formats='.webp' not in src,
            oversized=any(h in src for h in OVERSIZE_HINTS),
        )
        if issue.missing_alt or issue.missing_formats or issue.oversized:
            issues.append(issue)
            if len(issues) >= MAX_IMAGE_ISSUES:
                break
    return issues

def sample_hrefs(anchors, limit:int)->List[str]:
    picked = []
    checked = set()
    for a in anchors:
        if len(picked) >= limit:
            break
        href = a.attributes.get('href') or ''
        if not href or href.startswith('#') or href in checked:
            continue
        checked.add(href)
        picked.append(href)
    return picked

async def check_links(client, anchors, base_url:str, limit:int=LINK_SAMPLE_LIMIT, timeout=None)->List[LinkIssue]:
    limits = asyncio.Semaphore(PROBE_CONCURRENCY)

    async def one(href):
        absu = resolve_href(base_url, href)
        if absu is None:
            return LinkIssue(url=truncate(href), broken=True)
        async with limits:
            r = await probe(client, absu, method='HEAD', timeout=timeout)
        if r is None:
            return LinkIssue(url=truncate(href), broken=True)
        if r.status_code >= 400:
            return LinkIssue(url=truncate(href), status_code=r.status_code, broken=True)
        return None

    hrefs = sample_hrefs(anchors, limit)
    results = await asyncio.gather(*(one(h) for h in hrefs))
    return [r for r in results if r is not None]

async def check_redirects(client, url:str, timeout=None)->List[RedirectIssue]:
    # non-www and http variants are only computed; the www case is the one probed
    issues = []
    try:
        variants = www_variants(url)
        www_url = str(httpx.URL(variants['www']))
    except (ValueError, httpx.InvalidURL):
        return issues
    logger.debug("redirect variants for %s: %s", url, variants)
    origin = origin_of(url)
    if variants['www'] == variants['original'] or not origin:
        return issues
    r = await probe(client, www_url, timeout=timeout)
    if r is None:
        return issues
    final = str(r.url)
    if final != www_url and not final.startswith(origin):
        issues.append(RedirectIssue(type='www', message='Inconsistent www redirect behavior'))
    return issues

def _ok(r)->bool:
    return r is not None and 200 <= r.status_code < 300

async def check_resources(client, origin:Optional[str], timeout=None)->Tuple[bool, bool]:
    if not origin:
        return False, False
    robots, s1, s2 = await asyncio.gather(
        probe(client, f"{origin}/robots.txt", timeout=timeout),
        probe(client, f"{origin}/sitemap.xml", timeout=timeout),
        probe(client, f"{origin}/sitemap_index.xml", timeout=timeout),
    )
    return _ok(robots), _ok(s1) or _ok(s2)

def estimate_metrics(response_time_ms:float, body_bytes:int, rng=random)->Tuple[int, int, int]:
    """Model-based (ttfb, fcp, lcp) in ms; lcp carries up to 800ms of random jitter."""
    ttfb = max(response_time_ms - 50, 0)
    fcp = ttfb + min(body_bytes / 100, 500)
    lcp = fcp + rng.random() * 800
    return max(int(round(ttfb)), 0), max(int(round(fcp)), 0), max(int(round(lcp)), 0)

def calculate_score(report:AuditReport)->int:
    score = 100
    if not report.is_https: score -= 15
    if not report.has_viewport: score -= 10
    if report.img_without_alt > 0: score -= min(5, report.img_without_alt)
    if report.broken_links: score -= min(10, 2 * len(report.broken_links))
    if report.has_mixed_content: score -= 10
    if (report.response_time_ms or 0) > SLOW_RESPONSE_MS: score -= 5
    return max(0, score)

async def _audit(report:AuditReport, client, link_limit:int, rng, clock, probe_timeout):
    fetched = await fetch_page(client, report.url, clock=clock)
    if fetched.error:
        logger.warning("fetch failed for %s: %s", report.url, fetched.error)
        report.error = fetched.error
        return

    report.status = fetched.status
    report.response_time_ms = fetched.elapsed_ms
    report.content_type = fetched.content_type
    report.is_https = fetched.is_https
    report.has_hsts = fetched.has_hsts

    if not fetched.text:
        logger.warning("empty body from %s", report.url)
        report.error = 'Empty response body'
        return
    try:
        images, anchors = analyze_markup(report, fetched.text, report.url)
        report.image_issues = inspect_images(images)
    except Exception as e:
        logger.warning("markup analysis failed for %s: %s", report.url, _describe(e))
        report.error = _describe(e)
        return

    broken, redirects, (has_robots, has_sitemap) = await asyncio.gather(
        check_links(client, anchors, report.url, link_limit, probe_timeout),
        check_redirects(client, report.url, probe_timeout),
        check_resources(client, origin_of(report.url), probe_timeout),
    )
    report.broken_links = broken
    report.redirects = redirects
    report.has_robots = has_robots
    report.has_sitemap = has_sitemap

    report.ttfb_ms, report.fcp_ms, report.lcp_ms = estimate_metrics(fetched.elapsed_ms, fetched.body_bytes, rng)
    report.score = calculate_score(report)

async def run_audit(url:str, client:Optional[httpx.AsyncClient]=None, link_limit:int=LINK_SAMPLE_LIMIT,
                    rng=None, clock=time.perf_counter, probe_timeout:Optional[float]=None)->AuditReport:
    """Audit one page. Always returns a report; failures land in ``report.error``."""
    report = AuditReport(url=url)
    logger.info("audit start %s", url)
    rng = rng or random
    if client is not None:
        await _audit(report, client, link_limit, rng, clock, probe_timeout)
    else:
        async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
            await _audit(report, client, link_limit, rng, clock, probe_timeout)
    logger.info("audit done %s score=%s error=%s", url, report.score, report.error)
    return report
