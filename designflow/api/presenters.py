"""ORM rows -> response models."""
from designflow.db.models import Page, Project
from designflow.schemas import OptimizationSummary, PageWithLatest, ProjectDetail, ProjectListItem


def page_with_latest(page: Page) -> PageWithLatest:
    out = PageWithLatest.model_validate(page)
    if page.optimizations:
        out.latest_optimization = OptimizationSummary.model_validate(page.optimizations[0])
    return out


def project_list_item(project: Project) -> ProjectListItem:
    out = ProjectListItem.model_validate(project)
    out.page_count = len(project.pages)
    return out


def project_detail(project: Project) -> ProjectDetail:
    out = ProjectDetail.model_validate(project, from_attributes=True)
    out.pages = [page_with_latest(p) for p in project.pages]
    return out
