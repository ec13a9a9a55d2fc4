from sqlalchemy.orm import Session
from models.user import User, MagicLink
from config import settings
from client_identity import PREFIX_MAGIC_LINK, generate_id, is_valid_id
from errors import Conflict, Forbidden, NotFound
from datetime import datetime, timedelta
import aiosmtplib
from email.message import EmailMessage
import logging
import re

logger = logging.getLogger(__name__)


class MagicLinkInvalid(NotFound):
    def __init__(self):
        super().__init__("Magic link is invalid, used or expired")


def extract_name_from_email(email: str) -> str:
    """Extract name from email address (part before @)"""
    name_part = email.split('@')[0]
    name_part = re.sub(r'[._-]', ' ', name_part)
    return ' '.join(word.capitalize() for word in name_part.split())


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(db: Session, email: str, name: str = ""):
    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise Conflict(f"User already exists: {email}")
    user = User(email=email, name=name.strip() or extract_name_from_email(email))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("auth.signup: created user %s", user.id)
    return user


def signup(db: Session, email: str, name: str = ""):
    if settings.DISABLE_SIGNUP:
        raise Forbidden("Signup is disabled")
    return create_user(db, email, name)


def create_magic_link(db: Session, user: User) -> MagicLink:
    link = MagicLink(
        token=generate_id(PREFIX_MAGIC_LINK),
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES),
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def consume_magic_link(db: Session, token: str) -> User:
    """Mark the link used and return its user. Each link signs in once."""
    if not is_valid_id(token, PREFIX_MAGIC_LINK):
        raise MagicLinkInvalid()
    link = db.query(MagicLink).filter(MagicLink.token == token).first()
    if not link or link.used_at is not None or link.expires_at < datetime.utcnow():
        raise MagicLinkInvalid()
    user = db.query(User).filter(User.id == link.user_id).first()
    if user is None:
        raise MagicLinkInvalid()
    link.used_at = datetime.utcnow()
    user.last_login_at = link.used_at
    db.commit()
    return user


def magic_link_url(link: MagicLink) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/auth/verify/{link.token}"


async def send_magic_link_email(email: str, url: str):
    message = EmailMessage()
    message.set_content(
        f"Hello,\n\nUse the link below to sign in to {settings.PROJECT_NAME}:\n\n{url}\n\n"
        f"The link expires in {settings.MAGIC_LINK_EXPIRE_MINUTES} minutes and can be used once.\n"
    )
    message["Subject"] = f"Sign in to {settings.PROJECT_NAME}"
    message["From"] = settings.EMAIL_FROM
    message["To"] = email

    if not settings.SMTP_HOST:
        # Development without a relay: the link goes to the log instead
        logger.info("auth.magic_link: %s -> %s", email, url)
        return

    smtp_client = aiosmtplib.SMTP(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=False,
        start_tls=True,
    )
    async with smtp_client:
        await smtp_client.send_message(message)
    logger.info("auth.magic_link: sent to %s", email)


async def deliver_magic_link(db: Session, user: User) -> bool:
    """Create a link for ``user`` and mail it. Returns False when the relay fails."""
    link = create_magic_link(db, user)
    try:
        await send_magic_link_email(user.email, magic_link_url(link))
    except (aiosmtplib.SMTPException, OSError) as exc:
        logger.error("auth.magic_link: delivery to user %s failed: %s", user.id, exc)
        return False
    return True


async def request_login(db: Session, email: str) -> bool:
    """Mail a magic link when the address belongs to a user. Returns whether one was sent."""
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("auth.login: unknown address")
        return False
    return await deliver_magic_link(db, user)
