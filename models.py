from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from schemas import Post, TITLE_MAX_LENGTH

db = SQLAlchemy()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PostRecord(db.Model):
    __tablename__ = 'posts'

    id = db.Column(db.String(36), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, unique=True)
    title = db.Column(db.String(TITLE_MAX_LENGTH), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_post(self) -> Post:
        return Post(
            id=self.id,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
