from newsletter_service.shared.database.base_model import Base
from newsletter_service.shared.database.dialect import insert_or_do_nothing
from newsletter_service.shared.database.session import DatabaseSessionFactory

__all__ = ["Base", "DatabaseSessionFactory", "insert_or_do_nothing"]
