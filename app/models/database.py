from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON, Boolean, Float, ForeignKey
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from app.models.schemas import GenerationMode, GenerationStatus

Base = declarative_base()


class GenerationModel(Base):
    __tablename__ = "generations"

    id = Column(String(32), primary_key=True)
    issue_key = Column(String(50), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    project_id = Column(String(32), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    mode = Column(Enum(GenerationMode), default=GenerationMode.MANUAL)
    # NULL while the generation is in flight
    status = Column(Enum(GenerationStatus), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    generation_time_seconds = Column(Float, nullable=True)
    cost = Column(Float, nullable=True)
    # {"promptTokens", "completionTokens", "totalTokens"}
    token_usage = Column(JSON, nullable=True)
    # {"markdown": {"content", "filename"}}
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    published_by = Column(String(255), nullable=True)
    # [{"version", "content", "updatedAt", "updatedBy", "notes"}]
    version = Column(JSON, nullable=False, default=list)
    current_version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<Generation(id={self.id}, issue_key='{self.issue_key}', status='{self.status}')>"


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String(32), primary_key=True)
    project_key = Column(String(50), nullable=False, unique=True, index=True)
    created_by = Column(String(255), nullable=True)
    first_generated_at = Column(DateTime(timezone=True), nullable=True)
    last_generated_at = Column(DateTime(timezone=True), nullable=True)
    total_generations = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Project(id={self.id}, project_key='{self.project_key}')>"


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
