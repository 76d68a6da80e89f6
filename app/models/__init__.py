from app.models.conversation import Conversation, Message
from app.models.notification import Notification
from app.models.profile import CollaboratorProfile, ProjectOwnerProfile
from app.models.project import Application, Invite, Project, TeamMember
from app.models.user import User

__all__ = [
    "User",
    "CollaboratorProfile",
    "ProjectOwnerProfile",
    "Project",
    "Application",
    "Invite",
    "TeamMember",
    "Conversation",
    "Message",
    "Notification",
]
