from pydantic import BaseModel

from .issues import Issue
from .sites import Site
from .solutions import Solution


class SolutionDetail(BaseModel):
    """A solution together with the issue it resolved and that issue's site."""
    solution: Solution
    issue: Issue
    site: Site
