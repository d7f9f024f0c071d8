import uuid
from sqlalchemy import Column, String, Integer, Float, Boolean, Text, Index
from datetime import datetime, timezone
from .db import Base

def gen_uuid():
    return str(uuid.uuid4())

def now_ts():
    return datetime.now(timezone.utc).timestamp()

ROLE_USER = "user"
ROLE_ADMIN = "admin"

class User(Base):
    __tablename__ = "users"
    id = Column(String(64), primary_key=True, default=gen_uuid)
    username = Column(String(128), unique=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(128), nullable=False)
    avatar = Column(Text, nullable=True)
    status_message = Column(Text, nullable=True)
    gender = Column(String(32), nullable=True)
    age = Column(Integer, nullable=True)
    nationality = Column(String(64), nullable=True)
    role = Column(String(32), default=ROLE_USER, nullable=False)
    created_at = Column(Float, default=now_ts)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        # password_hash is never part of the public shape
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "avatar": self.avatar,
            "statusMessage": self.status_message,
            "gender": self.gender,
            "age": self.age,
            "nationality": self.nationality,
            "role": self.role,
        }

class Message(Base):
    __tablename__ = "messages"
    id = Column(String(64), primary_key=True)
    thread_key = Column(String(160), nullable=False, index=True)
    sender_id = Column(String(64), nullable=False, index=True)
    recipient_id = Column(String(64), nullable=False, index=True)
    role = Column(String(16), nullable=False, default="user")
    text = Column(Text, nullable=False)
    translated_text = Column(Text, nullable=False)
    timestamp = Column(Float, nullable=False)
    sender_name = Column(String(128), nullable=True)
    is_error = Column(Boolean, default=False)
    created_at = Column(Float, default=now_ts)

class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_user_counterparty", "user_id", "counterparty_id"),)
    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    counterparty_id = Column(String(64), nullable=False)
    text = Column(Text, nullable=False)
    completed = Column(Boolean, default=False)
    timestamp = Column(Float, nullable=False)
    created_at = Column(Float, default=now_ts)
