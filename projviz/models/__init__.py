"""Convenience imports for Alembic metadata discovery."""

from projviz.models.organization import Organization
from projviz.models.project import Project
from projviz.models.issue import Issue
from projviz.models.sync_log import SyncLog
from projviz.models.user import User
from projviz.models.notification import Notification
from projviz.models.audit_log import AuditLog
from projviz.models.jira_setting import JiraSetting  # noqa: F401
