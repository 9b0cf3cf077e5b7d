from fastapi import APIRouter, Depends, Query
from typing import Optional

from challengehub.models.challenge.review import ReviewStatus, SubmissionReview
from challengehub.models.challenge.submission import SubmissionCreate
from challengehub.routes.auth.dependencies import get_current_user, get_store
from challengehub.services.challenge.review import ReviewService
from challengehub.services.challenge.submission import SubmissionService
from challengehub.services.store.base import RecordStore
from challengehub.utils.errors import ChallengeHubError
from challengehub.utils.response import success_response, unauthorized_response, service_error_response

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("")
async def submit_solution(
    submission_data: SubmissionCreate,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Submit a solution for an accepted challenge.
    
    - Source code URL is required, hosted app URL is optional
    - Only one submission per challenge
    - The submission enters the review queue as Pending Review
    """
    if not current_user:
        return unauthorized_response()
    
    submission_service = SubmissionService(store)
    
    try:
        submission = await submission_service.submit_solution(current_user["username"], submission_data)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Solution submitted successfully",
        data={"submission": submission},
        status_code=201
    )


@router.get("")
async def list_submissions(
    username: Optional[str] = Query(None),
    challenge_id: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store)
):
    """List submissions, newest first"""
    submission_service = SubmissionService(store)
    submissions = await submission_service.list_submissions(username=username, challenge_id=challenge_id)
    
    return success_response(
        message="Submissions retrieved successfully",
        data={"submissions": submissions, "total": len(submissions)}
    )


@router.get("/reviews")
async def list_reviews(
    status: Optional[ReviewStatus] = Query(None),
    store: RecordStore = Depends(get_store)
):
    """
    List reviews for the review queue.
    
    - status=Pending Review gives the submissions waiting for a decision
    """
    submission_service = SubmissionService(store)
    reviews = await submission_service.list_reviews(status=status)
    
    return success_response(
        message="Reviews retrieved successfully",
        data={"reviews": reviews, "total": len(reviews)}
    )


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    store: RecordStore = Depends(get_store)
):
    """Get a submission with its review and resolved status"""
    submission_service = SubmissionService(store)
    
    try:
        details = await submission_service.get_submission_details(submission_id)
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message="Submission retrieved successfully",
        data=details
    )


@router.patch("/{submission_id}/review")
async def review_submission(
    submission_id: str,
    review_data: SubmissionReview,
    current_user: Optional[dict] = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """
    Review a submission (Management/Admin only).
    
    - approve: points awarded, reduced by the penalty if late
    - reject / rework: no points
    - A submission can only be reviewed once
    """
    if not current_user:
        return unauthorized_response()
    
    review_service = ReviewService(store)
    
    try:
        review = await review_service.review_submission(
            submission_id=submission_id,
            action=review_data.action,
            comment=review_data.comment,
            reviewer=current_user
        )
    except ChallengeHubError as e:
        return service_error_response(e)
    
    return success_response(
        message=f"Submission {review['status'].lower()}",
        data={"review": review}
    )
