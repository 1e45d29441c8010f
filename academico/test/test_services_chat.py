from unittest.mock import patch

from django.test import SimpleTestCase

from academico.services.chat import llm as llm_client
from academico.services.chat import service as chat_service
from academico.services.shared.errors import ExternalDependencyError, ValidationError

CFG = {
    "api_key": "sk-test",
    "model": "model_utama",
    "backup_models": ["model_backup"],
    "timeout": 5,
    "max_retries": 0,
    "temperature": 0.2,
    "max_prompt_chars": 50,
}


class _FakeMessage:
    def __init__(self, content):
        self.content = content


class _FakeLLM:
    def __init__(self, model_name, fail=False):
        self.model_name = model_name
        self.fail = fail

    def invoke(self, messages):
        if self.fail:
            raise RuntimeError(f"{self.model_name} caído")
        return _FakeMessage(f"respuesta de {self.model_name}: {messages[-1].content}")


class ChatServiceTests(SimpleTestCase):
    def test_primary_model_answers(self):
        with patch.object(chat_service.llm_client, "build_llm", side_effect=lambda m, cfg: _FakeLLM(m)) as mocked:
            out = chat_service.ask("¿Qué es un ponderado?", cfg=CFG)
        self.assertEqual(out["model"], "model_utama")
        self.assertFalse(out["fallback_used"])
        self.assertIn("¿Qué es un ponderado?", out["answer"])
        self.assertEqual(mocked.call_count, 1)

    def test_falls_back_when_primary_fails(self):
        def _build(model_name, cfg):
            return _FakeLLM(model_name, fail=(model_name == "model_utama"))

        with patch.object(chat_service.llm_client, "build_llm", side_effect=_build) as mocked:
            out = chat_service.ask("hola", cfg=CFG)
        self.assertEqual(out["model"], "model_backup")
        self.assertTrue(out["fallback_used"])
        self.assertEqual([c.args[0] for c in mocked.call_args_list], ["model_utama", "model_backup"])

    def test_all_models_fail(self):
        with patch.object(chat_service.llm_client, "build_llm", side_effect=lambda m, cfg: _FakeLLM(m, fail=True)):
            with self.assertRaises(ExternalDependencyError):
                chat_service.ask("hola", cfg=CFG)

    def test_prompt_validation(self):
        with self.assertRaises(ValidationError):
            chat_service.ask("   ", cfg=CFG)
        with self.assertRaises(ValidationError):
            chat_service.ask("x" * 51, cfg=CFG)

    def test_missing_api_key(self):
        with self.assertRaises(ExternalDependencyError):
            chat_service.ask("hola", cfg=dict(CFG, api_key=""))

    def test_candidate_models_are_deduplicated(self):
        self.assertEqual(
            llm_client.get_candidate_models("a", ["b", "a", " ", "c"]),
            ["a", "b", "c"],
        )

    def test_runtime_config_from_env(self):
        env = {
            "OPENROUTER_API_KEY": " sk-env ",
            "OPENROUTER_MODEL": "m1",
            "OPENROUTER_BACKUP_MODELS": "m2, m3",
            "OPENROUTER_TIMEOUT": "oops",
        }
        with patch.dict("os.environ", env, clear=False):
            cfg = llm_client.get_runtime_config()
        self.assertEqual(cfg["api_key"], "sk-env")
        self.assertEqual(cfg["model"], "m1")
        self.assertEqual(cfg["backup_models"], ["m2", "m3"])
        self.assertEqual(cfg["timeout"], 45)

    def test_build_llm_targets_openrouter(self):
        with patch.object(llm_client, "ChatOpenAI") as mocked:
            llm_client.build_llm("model_utama", CFG)
        kwargs = mocked.call_args.kwargs
        self.assertEqual(kwargs["openai_api_base"], llm_client.OPENROUTER_BASE_URL)
        self.assertEqual(kwargs["model_name"], "model_utama")
        self.assertEqual(kwargs["request_timeout"], 5)
