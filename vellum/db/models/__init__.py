from vellum.db.models.page import Page
from vellum.db.models.page_version import PageVersion
from vellum.db.models.project import Project
from vellum.db.models.project_version import ProjectVersion

__all__ = ["Page", "PageVersion", "Project", "ProjectVersion"]
