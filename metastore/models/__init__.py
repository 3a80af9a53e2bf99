from metastore.models.session import SessionRow
from metastore.models.site_config import SiteConfigRow
from metastore.models.user import UserRow
from metastore.models.video import VideoRow

__all__ = ["VideoRow", "UserRow", "SessionRow", "SiteConfigRow"]
