"""Tests for advdesk/storage — document store, blob store and repositories."""

import time
from urllib.parse import parse_qs, urlparse

import pytest

from advdesk.errors import InvalidArgument, NotFound
from advdesk.models.chat import ChatMessage, ChatRole, ChatSession
from advdesk.models.pipeline import PipelineKind, PipelineRecord, PipelineStatus
from advdesk.models.tenant import OfficeSettings, PromptSettings, UserProfile
from advdesk.storage.blobs import clean_segment, guess_mime_type
from advdesk.storage.documents import parent_of


class TestInMemoryDocumentStore:

    async def test_get_returns_copy(self, store):
        await store.set("a/b", {"x": [1]})
        doc = await store.get("a/b")
        doc["x"].append(2)
        assert await store.get("a/b") == {"x": [1]}

    async def test_list_only_direct_children_in_insertion_order(self, store):
        await store.set("col/2", {"n": 2})
        await store.set("col/1", {"n": 1})
        await store.set("col/1/sub/9", {"n": 9})
        assert await store.list("col") == [("2", {"n": 2}), ("1", {"n": 1})]

    async def test_update_missing_document(self, store):
        with pytest.raises(NotFound):
            await store.update("nope", {"a": 1})

    async def test_update_merges(self, store):
        await store.set("d", {"a": 1, "b": 1})
        assert await store.update("d", {"b": 2}) == {"a": 1, "b": 2}

    async def test_transact_sees_current_value(self, store):
        await store.transact("counter", lambda cur: {"n": (cur or {"n": 0})["n"] + 1})
        result = await store.transact("counter", lambda cur: {"n": cur["n"] + 1})
        assert result == {"n": 2}

    def test_parent_of(self):
        assert parent_of("tenants/t/petitions/1") == "tenants/t/petitions"
        assert parent_of("root") == ""


class TestLocalBlobStore:

    async def test_upload_download_delete(self, blobs):
        await blobs.upload("tenants/t/uploads/x/a.pdf", b"data")
        assert await blobs.download("tenants/t/uploads/x/a.pdf") == b"data"
        await blobs.delete("tenants/t/uploads/x/a.pdf")
        assert not await blobs.exists("tenants/t/uploads/x/a.pdf")

    async def test_download_missing(self, blobs):
        with pytest.raises(NotFound):
            await blobs.download("tenants/t/none.pdf")

    @pytest.mark.parametrize("path", ["../etc/passwd", "/abs/path", "tenants/../x"])
    async def test_path_traversal_rejected(self, blobs, path):
        with pytest.raises(InvalidArgument):
            await blobs.upload(path, b"x")

    def test_signed_url_round_trip(self, blobs):
        url, expires_at = blobs.signed_url("tenants/t/petitions/1/peticao_1.docx", ttl=600)
        parsed = urlparse(url)
        assert parsed.path == "/api/v1/blobs/tenants/t/petitions/1/peticao_1.docx"
        query = parse_qs(parsed.query)
        expires = int(query["expires"][0])
        assert expires == int(expires_at.timestamp())
        assert blobs.verify_signature("tenants/t/petitions/1/peticao_1.docx", expires, query["signature"][0])
        assert not blobs.verify_signature("tenants/t/other.docx", expires, query["signature"][0])

    def test_expired_signature_rejected(self, blobs):
        expired = int(time.time()) - 10
        signature = blobs._signature("tenants/t/a.pdf", expired)
        assert not blobs.verify_signature("tenants/t/a.pdf", expired, signature)

    def test_clean_segment(self):
        assert clean_segment("petição inicial (1).pdf") == "peti_o_inicial_1_.pdf"
        assert clean_segment("..") == "object"

    def test_guess_mime_type(self):
        assert guess_mime_type("a.pdf") == "application/pdf"
        assert guess_mime_type("a.unknownext") == "application/octet-stream"


class TestRepository:

    async def test_record_round_trip(self, repository):
        record = PipelineRecord(
            tenant_id="office-a", owner_id="u", kind=PipelineKind.PETITION,
            status=PipelineStatus.DRAFT, title="Ação",
        )
        await repository.save_record(record)
        loaded = await repository.get_record("office-a", PipelineKind.PETITION, record.id)
        assert loaded == record

    async def test_record_of_other_tenant_not_found(self, repository):
        record = PipelineRecord(
            tenant_id="office-a", owner_id="u", kind=PipelineKind.PETITION,
            status=PipelineStatus.DRAFT,
        )
        await repository.save_record(record)
        with pytest.raises(NotFound, match="Petição não encontrada"):
            await repository.get_record("office-b", PipelineKind.PETITION, record.id)

    async def test_review_not_found_message(self, repository):
        with pytest.raises(NotFound, match="Análise não encontrada"):
            await repository.get_record("office-a", PipelineKind.JUDGE_REVIEW, "x")

    async def test_messages_listed_in_write_order(self, repository):
        session = ChatSession(tenant_id="office-a", owner_id="u", client_name="C", area="civel")
        await repository.save_session(session)
        first = ChatMessage(session_id=session.id, role=ChatRole.USER, content="oi")
        second = ChatMessage(session_id=session.id, role=ChatRole.ASSISTANT, content="olá")
        await repository.add_message("office-a", first)
        await repository.add_message("office-a", second)
        messages = await repository.list_messages("office-a", session.id)
        assert [m.content for m in messages] == ["oi", "olá"]

    async def test_sessions_do_not_list_messages(self, repository, store):
        session = ChatSession(tenant_id="office-a", owner_id="u", client_name="C", area="civel")
        await repository.save_session(session)
        await repository.add_message(
            "office-a", ChatMessage(session_id=session.id, role=ChatRole.USER, content="oi")
        )
        listed = await store.list("tenants/office-a/chatSessions")
        assert [doc_id for doc_id, _ in listed] == [session.id]

    async def test_tenant_settings_defaults(self, repository):
        settings = await repository.get_tenant_settings("office-a")
        assert settings.prompts.petition_prompt is None
        assert settings.office.name is None

    async def test_tenant_settings_saved(self, repository):
        await repository.save_prompt_settings("office-a", PromptSettings(chat_prompt="Seja breve."))
        await repository.save_office_settings("office-a", OfficeSettings(name="Silva Adv."))
        settings = await repository.get_tenant_settings("office-a")
        assert settings.prompts.chat_prompt == "Seja breve."
        assert settings.office.name == "Silva Adv."

    async def test_save_user_writes_index(self, repository):
        await repository.save_user(UserProfile(uid="u9", tenant_id="office-z", email="a@b.c"))
        assert await repository.get_user_tenant("u9") == "office-z"
        assert (await repository.get_user("office-z", "u9")).email == "a@b.c"
        assert await repository.get_user_tenant("unknown") is None
