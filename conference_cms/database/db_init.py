import logging

from .database import engine, SessionLocal, Base
from .models import *
from conference_cms.services.passwords import hash_password

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@university-cms.com"
DEFAULT_ADMIN_PASSWORD = "password"


def initialize_db(bind=None, session_factory=None):
    """
    DB와 테이블을 생성하고, 기본 데이터(역할, 관리자 계정)를 삽입합니다.
    SQLAlchemy 모델을 사용하여 모든 작업을 수행합니다.
    """
    bind = bind or engine
    session_factory = session_factory or SessionLocal
    logger.info("Initializing database schema...")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=bind)

    db = session_factory()
    try:
        # 기본 데이터가 이미 있는지 확인
        if db.query(Role).first():
            logger.info("Seed data already present, skipping.")
            return

        roles = {name: Role(name=name) for name in ROLE_NAMES}
        db.add_all(roles.values())

        admin_user = User(
            name="Admin User",
            email=DEFAULT_ADMIN_EMAIL,
            password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
        )
        admin_user.roles.append(roles[ADMIN])
        db.add(admin_user)

        db.commit()
        logger.info("Database initialized with default roles and admin user.")

    except Exception:
        logger.exception("Database initialization failed")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    initialize_db()
