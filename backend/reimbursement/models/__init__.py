"""ORM 模型模块"""
from .template import Template, TemplateItem
from .project import Project, ProjectItem, ProjectStatus, ProjectItemStatus
from .attachment import Attachment
from .setting import Setting
from .document import DocumentTemplate, ProjectDocument

__all__ = [
    "Template",
    "TemplateItem",
    "Project",
    "ProjectItem",
    "ProjectStatus",
    "ProjectItemStatus",
    "Attachment",
    "Setting",
    "DocumentTemplate",
    "ProjectDocument",
]
