"""Top-level URL map for the lead form service.

- `/` is the form reached directly; `/<channel>` is the same form reached
  through a referral channel (unknown channels are tagged as direct).
- `/files` and `/files/<index>/remove` back the drop zone script.
- `/success` is shown once a lead has been sent.
"""

from django.urls import path
from leads import views

urlpatterns = [
    # Health endpoint for reverse proxy and uptime checks.
    path("healthz", views.healthz),

    path("files", views.intake_add_files),
    path("files/<int:index>/remove", views.intake_remove_file),
    path("success", views.lead_success),

    path("", views.lead_form),
    path("<slug:channel>", views.lead_form),
]
