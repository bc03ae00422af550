"""Client sessions: wizard steps, answers, photo ratings and admin actions."""

import asyncio
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from archimatch.models.db import ClientAnswer, InspirationPhoto, PhotoInteraction, photo_room_types
from archimatch.services import sessions as session_service


@pytest_asyncio.fixture
async def setup(client, architect):
    """Salon > Canapé zone with one select question, and one curated photo."""
    headers = architect["headers"]
    salon = (await client.post("/api/room-types", json={"name": "Salon"}, headers=headers)).json()
    child = (
        await client.post(
            "/api/room-types",
            json={"name": "Canapé zone", "parentId": salon["id"]},
            headers=headers,
        )
    ).json()
    question = (
        await client.post(
            "/api/questions",
            json={
                "roomTypeId": child["id"],
                "questionText": "Quel style?",
                "questionType": "select",
                "options": ["Moderne", "Classique"],
            },
            headers=headers,
        )
    ).json()
    photo = (
        await client.post(
            "/api/inspiration-photos",
            json={"imageUrl": "https://cdn.example.com/loft.jpg", "title": "Loft", "roomTypeIds": [child["id"]]},
            headers=headers,
        )
    ).json()
    session = (
        await client.post(
            "/api/client-sessions",
            json={
                "firstName": "Jane",
                "lastName": "Doe",
                "email": "jane@x.com",
                "architectId": architect["id"],
            },
        )
    ).json()
    return {
        "architect": architect,
        "salon": salon,
        "room": child,
        "question": question,
        "photo": photo,
        "session": session,
    }


def _naive(stamp: str) -> datetime:
    # SQLite hands timestamps back without an offset
    return datetime.fromisoformat(stamp).replace(tzinfo=None)


async def _answer(client, session_id, question_id, value):
    resp = await client.post(
        "/api/client-answers",
        json={"sessionId": session_id, "questionId": question_id, "answerValue": value},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


async def _rate(client, session_id, photo_id, action, **extra):
    resp = await client.post(
        "/api/photo-interactions",
        json={"sessionId": session_id, "photoId": photo_id, "action": action, **extra},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestCreateSession:
    """POST /api/client-sessions"""

    @pytest.mark.asyncio
    async def test_starts_in_progress(self, client, architect):
        """A new session is in_progress with no rooms selected."""
        resp = await client.post(
            "/api/client-sessions",
            json={"firstName": "Jane", "lastName": "Doe", "email": "jane@x.com", "architectId": architect["id"]},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "in_progress"
        assert body["completedAt"] is None
        assert body["selectedRoomTypes"] == []

    @pytest.mark.asyncio
    async def test_unknown_architect(self, client):
        """Starting a session for an unknown architect is a 404."""
        resp = await client.post(
            "/api/client-sessions",
            json={"firstName": "Jane", "lastName": "Doe", "email": "jane@x.com", "architectId": "nope"},
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, architect):
        """Missing identity fields fail validation."""
        resp = await client.post(
            "/api/client-sessions", json={"firstName": "Jane", "architectId": architect["id"]}
        )
        assert resp.status_code == 422


class TestWizardSteps:
    @pytest.mark.asyncio
    async def test_general_info_partial_update(self, client, setup):
        """Each general-info PUT only touches the keys it sends."""
        session_id = setup["session"]["id"]
        resp = await client.put(
            f"/api/client-sessions/{session_id}/general-info",
            json={"projectType": "renovation", "householdAdults": 2, "hasAnimals": True},
        )
        assert resp.status_code == 200
        resp = await client.put(
            f"/api/client-sessions/{session_id}/general-info",
            json={"housingType": "appartement"},
        )
        body = resp.json()
        assert body["projectType"] == "renovation"
        assert body["householdAdults"] == 2
        assert body["hasAnimals"] is True
        assert body["housingType"] == "appartement"

    @pytest.mark.asyncio
    async def test_general_info_unknown_session(self, client):
        """General info for an unknown session is a 404."""
        resp = await client.put("/api/client-sessions/nope/general-info", json={})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_room_selection(self, client, setup):
        """The room selection is stored as sent."""
        session_id = setup["session"]["id"]
        resp = await client.put(
            f"/api/client-sessions/{session_id}/room-selection",
            json={"selectedRoomTypes": [setup["room"]["id"]]},
        )
        assert resp.status_code == 200
        assert resp.json()["selectedRoomTypes"] == [setup["room"]["id"]]

    @pytest.mark.asyncio
    async def test_room_selection_must_be_array(self, client, setup):
        """A non-array room selection is an invalid argument."""
        session_id = setup["session"]["id"]
        resp = await client.put(
            f"/api/client-sessions/{session_id}/room-selection",
            json={"selectedRoomTypes": "salon"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_argument"


class TestAnswers:
    """POST /api/client-answers"""

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_row(self, client, setup, db):
        """Answering twice updates the same row."""
        session_id, question_id = setup["session"]["id"], setup["question"]["id"]
        first = await _answer(client, session_id, question_id, "Moderne")
        second = await _answer(client, session_id, question_id, "Classique")
        assert first["id"] == second["id"]
        assert second["answerValue"] == "Classique"
        count = await db.scalar(
            select(func.count(ClientAnswer.id)).where(ClientAnswer.session_id == session_id)
        )
        assert count == 1

    @pytest.mark.asyncio
    async def test_concurrent_upserts_keep_one_row(self, setup, sessionmaker, db):
        """Simultaneous writes to the same question resolve to a single answer."""
        session_id, question_id = setup["session"]["id"], setup["question"]["id"]

        async def write(value):
            async with sessionmaker() as own:
                return await session_service.upsert_answer(
                    own, session_id=session_id, question_id=question_id, answer_value=value
                )

        values = [f"choice-{i}" for i in range(8)]
        rows = await asyncio.gather(*(write(v) for v in values))
        assert len({row.id for row in rows}) == 1
        stored = (
            await db.scalars(select(ClientAnswer).where(ClientAnswer.session_id == session_id))
        ).all()
        assert len(stored) == 1
        assert stored[0].answer_value in values

    @pytest.mark.asyncio
    async def test_multi_value_stored_as_json(self, client, setup):
        """List answers are stored as a JSON array."""
        body = await _answer(
            client, setup["session"]["id"], setup["question"]["id"], ["Moderne", "Classique"]
        )
        assert body["answerValue"] == '["Moderne", "Classique"]'

    @pytest.mark.asyncio
    async def test_number_and_bool_stored_as_text(self, client, setup):
        """Numbers and booleans are stored as their text."""
        session_id, question_id = setup["session"]["id"], setup["question"]["id"]
        assert (await _answer(client, session_id, question_id, 3))["answerValue"] == "3"
        assert (await _answer(client, session_id, question_id, True))["answerValue"] == "true"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client, setup):
        """An unknown session id is a 404."""
        resp = await client.post(
            "/api/client-answers",
            json={"sessionId": "nope", "questionId": setup["question"]["id"], "answerValue": "x"},
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_question_of_other_architect(self, client, setup, other_architect):
        """Answering another architect's question is a 404."""
        headers = other_architect["headers"]
        room = (await client.post("/api/room-types", json={"name": "Bureau"}, headers=headers)).json()
        theirs = (
            await client.post(
                "/api/questions",
                json={"roomTypeId": room["id"], "questionText": "?", "questionType": "text"},
                headers=headers,
            )
        ).json()
        resp = await client.post(
            "/api/client-answers",
            json={"sessionId": setup["session"]["id"], "questionId": theirs["id"], "answerValue": "x"},
        )
        assert resp.status_code == 404


class TestPhotoInteractions:
    """/api/photo-interactions"""

    @pytest.mark.asyncio
    async def test_like_then_dislike_keeps_one_row(self, client, setup, db):
        """Rating a photo twice updates the same row."""
        session_id, photo_id = setup["session"]["id"], setup["photo"]["id"]
        liked = await _rate(client, session_id, photo_id, "like")
        disliked = await _rate(client, session_id, photo_id, "dislike")
        assert liked["id"] == disliked["id"]
        assert disliked["action"] == "dislike"
        assert disliked["photo"]["title"] == "Loft"
        count = await db.scalar(
            select(func.count(PhotoInteraction.id)).where(PhotoInteraction.session_id == session_id)
        )
        assert count == 1

    @pytest.mark.asyncio
    async def test_concurrent_upserts_keep_one_row(self, setup, sessionmaker, db):
        """Simultaneous ratings of the same photo resolve to a single interaction."""
        session_id, photo_id = setup["session"]["id"], setup["photo"]["id"]

        async def rate(action):
            async with sessionmaker() as own:
                return await session_service.upsert_photo_interaction(
                    own, session_id=session_id, photo_id=photo_id, action=action
                )

        actions = ["like", "dislike"] * 4
        rows = await asyncio.gather(*(rate(a) for a in actions))
        assert len({row.id for row in rows}) == 1
        stored = (
            await db.scalars(
                select(PhotoInteraction).where(PhotoInteraction.session_id == session_id)
            )
        ).all()
        assert len(stored) == 1
        assert stored[0].action in {"like", "dislike"}

    @pytest.mark.asyncio
    async def test_annotations_kept_when_omitted(self, client, setup):
        """Omitting annotations keeps the saved ones."""
        session_id, photo_id = setup["session"]["id"], setup["photo"]["id"]
        note = {"x": 10, "y": 90.5, "comment": "J'aime ce canapé"}
        await _rate(client, session_id, photo_id, "like", annotations=[note])
        body = await _rate(client, session_id, photo_id, "dislike")
        assert body["annotations"] == [note]

    @pytest.mark.asyncio
    async def test_annotations_replaced_when_sent(self, client, setup):
        """Sending annotations replaces the saved ones."""
        session_id, photo_id = setup["session"]["id"], setup["photo"]["id"]
        await _rate(client, session_id, photo_id, "like", annotations=[{"x": 1, "y": 2, "comment": "a"}])
        body = await _rate(client, session_id, photo_id, "like", annotationsJson=[])
        assert body["annotations"] == []

    @pytest.mark.asyncio
    async def test_annotation_out_of_range(self, client, setup):
        """Annotation coordinates must be percentages."""
        resp = await client.post(
            "/api/photo-interactions",
            json={
                "sessionId": setup["session"]["id"],
                "photoId": setup["photo"]["id"],
                "action": "like",
                "annotations": [{"x": 120, "y": 5}],
            },
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_action(self, client, setup):
        """Only like and dislike are accepted."""
        resp = await client.post(
            "/api/photo-interactions",
            json={"sessionId": setup["session"]["id"], "photoId": setup["photo"]["id"], "action": "love"},
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_photo(self, client, setup):
        """Rating an unknown photo is a 404."""
        resp = await client.post(
            "/api/photo-interactions",
            json={"sessionId": setup["session"]["id"], "photoId": "nope", "action": "like"},
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_list_for_session(self, client, setup):
        """Interactions are listed with their photo and rooms."""
        session_id, photo_id = setup["session"]["id"], setup["photo"]["id"]
        await _rate(client, session_id, photo_id, "like")
        resp = await client.get("/api/photo-interactions", params={"sessionId": session_id})
        assert resp.status_code == 200
        body = resp.json()
        assert len(body) == 1
        assert body[0]["photo"]["roomTypeIds"] == [setup["room"]["id"]]

    @pytest.mark.asyncio
    async def test_list_requires_session_id(self, client):
        """Listing interactions needs sessionId."""
        resp = await client.get("/api/photo-interactions")
        assert resp.status_code == 422


class TestCompletion:
    @pytest.mark.asyncio
    async def test_complete_is_idempotent(self, client, setup):
        """Completing twice keeps the first completedAt."""
        session_id = setup["session"]["id"]
        first = await client.patch(f"/api/client-sessions/{session_id}/complete")
        assert first.status_code == 200
        assert first.json()["status"] == "completed"
        assert first.json()["completedAt"] is not None
        second = await client.patch(f"/api/client-sessions/{session_id}/complete")
        assert second.json()["status"] == "completed"
        assert _naive(second.json()["completedAt"]) == _naive(first.json()["completedAt"])

    @pytest.mark.asyncio
    async def test_abandon_requires_token(self, client, setup):
        """Abandoning a session needs the architect's token."""
        resp = await client.patch(f"/api/client-sessions/{setup['session']['id']}/abandon")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_abandoned_cannot_complete(self, client, setup):
        """An abandoned session cannot be completed."""
        session_id = setup["session"]["id"]
        headers = setup["architect"]["headers"]
        resp = await client.patch(f"/api/client-sessions/{session_id}/abandon", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "abandoned"
        resp = await client.patch(f"/api/client-sessions/{session_id}/complete")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_completed_cannot_be_abandoned(self, client, setup):
        """A completed session cannot be abandoned."""
        session_id = setup["session"]["id"]
        await client.patch(f"/api/client-sessions/{session_id}/complete")
        resp = await client.patch(
            f"/api/client-sessions/{session_id}/abandon", headers=setup["architect"]["headers"]
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_update_status_sweeps_answered_sessions(self, client, setup):
        """The sweep completes answered sessions only, once."""
        architect = setup["architect"]
        answered = setup["session"]["id"]
        await _answer(client, answered, setup["question"]["id"], "Moderne")
        idle = (
            await client.post(
                "/api/client-sessions",
                json={"firstName": "Paul", "lastName": "Martin", "email": "p@x.com", "architectId": architect["id"]},
            )
        ).json()["id"]

        resp = await client.post("/api/client-sessions/update-status", headers=architect["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"count": 1}

        assert (await client.get(f"/api/client-sessions/{answered}")).json()["status"] == "completed"
        assert (await client.get(f"/api/client-sessions/{idle}")).json()["status"] == "in_progress"

        resp = await client.post("/api/client-sessions/update-status", headers=architect["headers"])
        assert resp.json() == {"count": 0}


class TestAdminViews:
    @pytest.mark.asyncio
    async def test_list_sessions_with_relations(self, client, setup):
        """The admin listing embeds architect and answered questions."""
        await _answer(client, setup["session"]["id"], setup["question"]["id"], "Moderne")
        resp = await client.get("/api/client-sessions", headers=setup["architect"]["headers"])
        assert resp.status_code == 200
        (session,) = resp.json()
        assert session["architect"]["name"] == "Demo"
        assert session["answers"][0]["question"]["roomType"]["name"] == "Canapé zone"

    @pytest.mark.asyncio
    async def test_list_sessions_tenant_scoped(self, client, setup, other_architect):
        """Other architects' sessions are not listed."""
        resp = await client.get("/api/client-sessions", headers=other_architect["headers"])
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, client, setup):
        """Dashboard counters reflect sessions, questions and photos."""
        session_id = setup["session"]["id"]
        await client.patch(f"/api/client-sessions/{session_id}/complete")
        resp = await client.get("/api/dashboard/stats", headers=setup["architect"]["headers"])
        assert resp.status_code == 200
        assert resp.json() == {
            "totalSessions": 1,
            "completedSessions": 1,
            "totalQuestions": 1,
            "totalPhotos": 1,
        }

    @pytest.mark.asyncio
    async def test_dashboard_requires_token(self, client):
        """The dashboard needs a bearer token."""
        resp = await client.get("/api/dashboard/stats")
        assert resp.status_code == 401


class TestDeleteSession:
    """DELETE /api/client-sessions/{id}"""

    @pytest.mark.asyncio
    async def test_removes_answers_interactions_and_uploads(self, client, setup, db):
        """Deleting a session removes everything the client created."""
        session_id = setup["session"]["id"]
        await _answer(client, session_id, setup["question"]["id"], "Moderne")
        await _rate(client, session_id, setup["photo"]["id"], "like")
        upload = (
            await client.post(
                "/api/inspiration-photos",
                json={
                    "imageUrl": "/uploads/1-abc.jpg",
                    "sessionId": session_id,
                    "roomTypeIds": [setup["room"]["id"]],
                },
            )
        ).json()
        await _rate(client, session_id, upload["id"], "like")

        resp = await client.delete(
            f"/api/client-sessions/{session_id}", headers=setup["architect"]["headers"]
        )
        assert resp.status_code == 204

        assert (await client.get(f"/api/client-sessions/{session_id}")).status_code == 404
        for model, column in (
            (ClientAnswer, ClientAnswer.session_id),
            (PhotoInteraction, PhotoInteraction.session_id),
            (InspirationPhoto, InspirationPhoto.session_id),
        ):
            count = await db.scalar(select(func.count()).select_from(model).where(column == session_id))
            assert count == 0, model.__tablename__
        links = await db.scalar(
            select(func.count()).select_from(photo_room_types).where(
                photo_room_types.c.photo_id == upload["id"]
            )
        )
        assert links == 0
        # The curated photo survives.
        assert await db.get(InspirationPhoto, setup["photo"]["id"]) is not None

    @pytest.mark.asyncio
    async def test_other_architect_cannot_delete(self, client, setup, other_architect):
        """Another architect's session is a 404 on delete."""
        resp = await client.delete(
            f"/api/client-sessions/{setup['session']['id']}", headers=other_architect["headers"]
        )
        assert resp.status_code == 404


class TestIntakeScenario:
    @pytest.mark.asyncio
    async def test_answer_visible_on_session(self, client, setup):
        """Salon > Canapé zone > "Quel style?" answered "Moderne" by Jane Doe."""
        session_id = setup["session"]["id"]
        await _answer(client, session_id, setup["question"]["id"], "Moderne")

        resp = await client.get(f"/api/client-sessions/{session_id}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["firstName"] == "Jane"
        assert len(body["answers"]) == 1
        assert body["answers"][0]["question"]["questionText"] == "Quel style?"
        assert body["answers"][0]["answerValue"] == "Moderne"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        """An unknown session id is a 404."""
        resp = await client.get("/api/client-sessions/nope")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"
