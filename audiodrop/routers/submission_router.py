"""Submission form endpoints.

Routers handle HTTP concerns only - no business logic.
All business logic is delegated to JobService.
"""

from typing import TYPE_CHECKING

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from audiodrop.exceptions import QueueFullError
from audiodrop.models.domain import SubmissionRequest

if TYPE_CHECKING:
    from audiodrop.services.job_service import JobService

ACKNOWLEDGEMENT = "Download request received. You will receive an email shortly."

FORM_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>YouTube to MP3</title>
    <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/picnic" />
  </head>
  <body>
    <form method="POST">
      <label for="youtube_url">YouTube URL:</label><br>
      <input type="text" id="youtube_url" name="youtube_url"><br><br>
      <label for="email">Email:</label><br>
      <input type="email" id="email" name="email"><br><br>
      <input type="submit" value="Submit">
    </form>
    <script>
      window.onload = () => {
        const email = document.getElementById("email");
        email.value = localStorage.getItem("email");
        document.querySelector("form").addEventListener("submit", () => {
          localStorage.setItem("email", email.value);
        });
      };
    </script>
  </body>
</html>
"""


def create_submission_router(
    job_service: "JobService",
    *,
    base_url: str | None = None,
) -> APIRouter:
    """Create the form router with injected service.

    Args:
        job_service: JobService instance for business logic.
        base_url: Prefix for emailed links; the request's own base URL is
            used when empty.

    Returns:
        APIRouter serving GET / and POST /.
    """
    router = APIRouter(tags=["submission"])

    @router.get("/", response_class=HTMLResponse)
    async def show_form() -> HTMLResponse:
        """Render the submission form."""
        return HTMLResponse(FORM_HTML)

    @router.post("/", response_class=PlainTextResponse)
    async def submit_form(
        request: Request,
        youtube_url: str = Form(""),
        email: str = Form(""),
    ) -> PlainTextResponse:
        """Accept a submission and queue the job.

        Responds before the job runs; the outcome arrives by email.

        Raises:
            HTTPException: 503 if the job queue is full
        """
        submission = SubmissionRequest(source_url=youtube_url, recipient_email=email)
        link_base = base_url or str(request.base_url)
        try:
            record = await job_service.submit(submission, base_url=link_base)
        except QueueFullError as e:
            raise HTTPException(status_code=503, detail=str(e))

        return PlainTextResponse(ACKNOWLEDGEMENT, headers={"X-Job-ID": record.id})

    return router
