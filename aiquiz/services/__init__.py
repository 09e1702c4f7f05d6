"""Services - domain operations shared by routes and the CLI."""

from aiquiz.services.bootstrap import seed_admin, super_admin_configured
from aiquiz.services.files import delete_files, delete_subject_content
from aiquiz.services.invitations import InvitationResult, invite_professor
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore

__all__ = [
    "seed_admin",
    "super_admin_configured",
    "delete_files",
    "delete_subject_content",
    "InvitationResult",
    "invite_professor",
    "SubjectStore",
    "TopicStore",
]
