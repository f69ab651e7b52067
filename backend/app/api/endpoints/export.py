from fastapi import APIRouter, HTTPException, Response
from backend.app.services.session_query import QuizSessionService, SessionNotFoundError

router = APIRouter()
session_service = QuizSessionService()

@router.get("/{session_id}/export")
async def export_session(session_id: str):
    """
    Returns the session as a standalone JSON document:
    student, quiz timing, final answers and grading summary.
    """
    try:
        export = await session_service.export_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(
        content=export.model_dump_json(by_alias=True, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="quiz-session-{session_id}.json"'}
    )
