import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class SkillLevel(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class ProjectStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ANALYZED = "ANALYZED"
    COMPLETED = "COMPLETED"


class OptimizationStatus(str, enum.Enum):
    PENDING = "PENDING"
    REVISED = "REVISED"
    # REFINED is an alias of REVISED: both name the "AI pass applied" state.
    REFINED = "REVISED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    skill_level = Column(Enum(SkillLevel, native_enum=False, length=20), nullable=False, default=SkillLevel.BEGINNER)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan")


class Project(Base):
    __tablename__ = "projects"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    status = Column(Enum(ProjectStatus, native_enum=False, length=20), nullable=False, default=ProjectStatus.DRAFT)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    user = relationship("User", back_populates="projects")
    pages = relationship("Page", back_populates="project", cascade="all, delete-orphan", order_by="Page.order")
    comments = relationship("Comment", back_populates="project", cascade="all, delete-orphan")


class Page(Base):
    __tablename__ = "pages"
    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    canvas_data = Column(JSON, nullable=True)
    source_image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    project = relationship("Project", back_populates="pages")
    optimizations = relationship(
        "Optimization",
        back_populates="page",
        cascade="all, delete-orphan",
        order_by="Optimization.created_at.desc()",
    )
    comments = relationship("Comment", back_populates="page", cascade="all", passive_deletes=True)


class Optimization(Base):
    __tablename__ = "optimizations"
    id = Column(String(36), primary_key=True, default=_uuid)
    page_id = Column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(
            OptimizationStatus,
            native_enum=False,
            length=20,
            validate_strings=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OptimizationStatus.PENDING,
    )
    original_design = Column(JSON, nullable=False)
    optimized_design = Column(JSON, nullable=True)
    suggestions = Column(JSON, nullable=True)
    user_feedback = Column(JSON, nullable=True)
    ai_analysis = Column(Text, nullable=True)
    quality_score = Column(Integer, nullable=True)
    generated_code = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    page = relationship("Page", back_populates="optimizations")
    refinements = relationship(
        "Refinement",
        back_populates="optimization",
        cascade="all, delete-orphan",
        order_by="Refinement.created_at.desc()",
    )


class Refinement(Base):
    __tablename__ = "refinements"
    id = Column(String(36), primary_key=True, default=_uuid)
    optimization_id = Column(String(36), ForeignKey("optimizations.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False)
    feedback = Column(Text, nullable=True)
    refined_design = Column(JSON, nullable=True)
    changes = Column(JSON, nullable=True)
    explanation = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    optimization = relationship("Optimization", back_populates="refinements")


class Comment(Base):
    __tablename__ = "comments"
    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    page_id = Column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=True, index=True)
    parent_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    position_x = Column(Float, nullable=True)
    position_y = Column(Float, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    project = relationship("Project", back_populates="comments")
    page = relationship("Page", back_populates="comments")
    user = relationship("User")
    parent = relationship("Comment", back_populates="replies", remote_side=[id])
    replies = relationship(
        "Comment",
        back_populates="parent",
        cascade="all",
        passive_deletes=True,
        order_by="Comment.created_at.asc()",
    )
