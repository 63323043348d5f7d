from dataclasses import dataclass, field, asdict
from typing import List, Optional

@dataclass
class ImageIssue:
    src: str
    missing_alt: bool = False
    missing_formats: bool = False
    oversized: bool = False

@dataclass
class LinkIssue:
    url: str
    status_code: Optional[int] = None
    broken: bool = True

@dataclass
class RedirectIssue:
    type: str  # www | non-www | http-https | other
    message: str

@dataclass
class FetchResult:
    url: str
    final_url: str = ''
    status: Optional[int] = None
    elapsed_ms: Optional[int] = None
    content_type: Optional[str] = None
    is_https: bool = False
    has_hsts: bool = False
    text: str = ''
    body_bytes: int = 0
    error: Optional[str] = None

@dataclass
class AuditReport:
    """Outcome of one audit. Every field starts at its zero value and is
    filled in stage by stage; when ``error`` is set the remaining fields are
    defaults, not measurements."""
    url: str
    status: Optional[int] = None
    response_time_ms: Optional[int] = None
    content_type: Optional[str] = None
    title: Optional[str] = None
    meta_description: Optional[str] = None
    h1_count: int = 0
    total_images: int = 0
    img_without_alt: int = 0
    image_issues: List[ImageIssue] = field(default_factory=list)
    total_links: int = 0
    broken_links: List[LinkIssue] = field(default_factory=list)
    external_links: int = 0
    scripts_count: int = 0
    inline_styles_count: int = 0
    has_robots: bool = False
    has_sitemap: bool = False
    ttfb_ms: int = 0
    fcp_ms: int = 0
    lcp_ms: int = 0
    has_viewport: bool = False
    responsive: bool = False
    is_https: bool = False
    has_hsts: bool = False
    has_mixed_content: bool = False
    redirects: List[RedirectIssue] = field(default_factory=list)
    score: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
