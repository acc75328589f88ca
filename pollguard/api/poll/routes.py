from flask import Blueprint, current_app
from flasgger import swag_from
from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...models.poll import Poll

polls_bp = Blueprint("polls", __name__)


@polls_bp.get("/<int:poll_id>")
@swag_from({
    "tags": ["Polls"],
    "summary": "Public poll state",
    "description": "Unknown polls (and lookup failures) report isOpen=false.",
    "responses": {200: {"description": "OK"}},
})
def poll_state(poll_id):
    try:
        poll = db.session.get(Poll, poll_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error fetching poll state")
        poll = None

    if poll is None:
        return {"isOpen": False}, 200

    return {
        "id": poll.id,
        "title": poll.title,
        "isOpen": poll.is_open,
        "optionCount": poll.option_count,
    }, 200
