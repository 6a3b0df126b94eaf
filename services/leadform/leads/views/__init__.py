"""Export surface for leads.views.

Endpoints live in submodules by concern:
- leads.views.lead_form (form page, submit, success, restart)
- leads.views.intake (picker/drop file intake and removal)
"""

from .intake import *  # noqa: F401,F403
from .lead_form import *  # noqa: F401,F403
