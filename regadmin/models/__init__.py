from regadmin.models.associations import event_user, user_sphere
from regadmin.models.activity_log import ActivityLog
from regadmin.models.event import Event
from regadmin.models.group import Group
from regadmin.models.sphere import Sphere
from regadmin.models.user import User
from regadmin.models.user_file import UserFile

__all__ = [ "event_user", "user_sphere", "ActivityLog", "Event",
           "Group", "Sphere", "User", "UserFile" ]
