from .auditor import run_audit
from .models import AuditReport, ImageIssue, LinkIssue, RedirectIssue
