"""Tests for agent inspection, creation, update and deletion."""

import json

import pytest
from pathlib import Path

from chamber.config import ChamberConfig
from chamber.documents import parse_document
from chamber.engine import AgentManager, EntityManager, get_manager
from chamber.errors import ConfigParseError, EntityExistsError, InvalidFileReferenceError
from chamber.paths import Layer, Scope


def _write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def _write_md(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def config(tmp_path: Path) -> ChamberConfig:
    return ChamberConfig(config_root=tmp_path / "root")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    p = tmp_path / "project"
    p.mkdir()
    return p


@pytest.fixture
def agents(config: ChamberConfig) -> AgentManager:
    return AgentManager(config)


class TestGetSources:
    def test_nothing(self, agents: AgentManager, config: ChamberConfig):
        sources = agents.get_sources("ghost")
        assert not sources.document.exists
        assert sources.document.path is None
        assert not sources.json.exists
        assert sources.json.path == config.user_config_file
        assert sources.json.fields == []

    def test_json_path_defaults_to_project(self, agents: AgentManager, project: Path):
        assert agents.get_sources("ghost", project).json.path == project / "opencode.json"

    def test_document_fields_include_prompt(self, agents: AgentManager, config: ChamberConfig):
        _write_md(config.agent_dir / "reviewer.md", "---\nmodel: gpt\nmode: subagent\n---\n\nReview.")
        sources = agents.get_sources("reviewer")
        assert sources.document.exists
        assert sources.document.scope is Scope.USER
        assert sources.document.fields == ["model", "mode", "prompt"]

    def test_empty_body_not_listed(self, agents: AgentManager, config: ChamberConfig):
        _write_md(config.agent_dir / "reviewer.md", "---\nmodel: gpt\n---\n")
        assert agents.get_sources("reviewer").document.fields == ["model"]

    def test_both_sources_and_flags(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        _write_md(project / ".opencode" / "agent" / "r.md", "---\nmodel: p\n---\n")
        _write_md(config.agent_dir / "r.md", "---\nmodel: u\n---\n")
        _write_json(config.user_config_file, {"agent": {"r": {"temperature": 0.1}}})

        sources = agents.get_sources("r", project)
        assert sources.document.scope is Scope.PROJECT
        assert sources.project_document.exists
        assert sources.user_document.exists
        assert sources.json.exists
        assert sources.json.layer is Layer.USER
        assert sources.json.scope is Scope.USER
        assert sources.json.fields == ["temperature"]

    def test_project_json_scope(self, agents: AgentManager, project: Path):
        _write_json(project / "opencode.json", {"agent": {"r": {"model": "x"}}})
        sources = agents.get_sources("r", project)
        assert sources.json.scope is Scope.PROJECT

    def test_to_dict(self, agents: AgentManager, config: ChamberConfig):
        _write_md(config.agent_dir / "r.md", "body only")
        data = agents.get_sources("r").to_dict()
        assert data["md"] == {
            "exists": True,
            "path": str(config.agent_dir / "r.md"),
            "scope": "user",
            "fields": ["prompt"],
        }
        assert data["json"]["exists"] is False
        assert data["projectMd"] == {"exists": False, "path": None}
        assert data["userMd"]["exists"] is True

    def test_malformed_json_propagates(self, agents: AgentManager, config: ChamberConfig):
        config.user_config_file.parent.mkdir(parents=True)
        config.user_config_file.write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            agents.get_sources("r")


class TestCreate:
    def test_user_scope_default(self, agents: AgentManager, config: ChamberConfig):
        path = agents.create("reviewer", {"model": "gpt", "prompt": "Review code."})
        assert path == config.agent_dir / "reviewer.md"
        doc = parse_document(path)
        assert doc.header == {"model": "gpt"}
        assert doc.body == "Review code."

    def test_bootstraps_global_dirs(self, agents: AgentManager, config: ChamberConfig):
        agents.create("reviewer", {})
        assert config.agent_dir.is_dir()
        assert config.command_dir.is_dir()

    def test_project_scope(self, agents: AgentManager, project: Path):
        path = agents.create("reviewer", {"prompt": "p"}, project, "project")
        assert path == project / ".opencode" / "agent" / "reviewer.md"
        assert path.exists()

    def test_project_scope_without_working_directory_falls_back(
        self, agents: AgentManager, config: ChamberConfig
    ):
        path = agents.create("reviewer", {}, None, Scope.PROJECT)
        assert path == config.agent_dir / "reviewer.md"

    def test_scope_not_persisted(self, agents: AgentManager, project: Path):
        path = agents.create("reviewer", {"scope": "project", "mode": "primary"}, project, "project")
        assert parse_document(path).header == {"mode": "primary"}

    def test_non_string_prompt_ignored(self, agents: AgentManager):
        path = agents.create("reviewer", {"prompt": None, "model": "m"})
        assert parse_document(path).body == ""

    def test_collision_project(self, agents: AgentManager, project: Path):
        first = agents.create("reviewer", {"prompt": "first"}, project, "project")
        before = first.read_text(encoding="utf-8")
        with pytest.raises(EntityExistsError, match="project-level"):
            agents.create("reviewer", {"prompt": "second"}, project, "project")
        assert first.read_text(encoding="utf-8") == before

    def test_collision_user_document(self, agents: AgentManager, project: Path):
        agents.create("reviewer", {})
        with pytest.raises(EntityExistsError, match="user-level"):
            agents.create("reviewer", {}, project, "project")
        assert not (project / ".opencode" / "agent" / "reviewer.md").exists()

    def test_collision_json(self, agents: AgentManager, config: ChamberConfig, project: Path):
        _write_json(project / "opencode.json", {"agent": {"reviewer": {"model": "x"}}})
        with pytest.raises(EntityExistsError, match="opencode.json"):
            agents.create("reviewer", {}, project)
        assert not (config.agent_dir / "reviewer.md").exists()


class TestUpdate:
    def test_document_fields_and_body(self, agents: AgentManager, config: ChamberConfig):
        path = _write_md(config.agent_dir / "r.md", "---\nmodel: a\n---\n\nold")
        agents.update("r", {"model": "b", "prompt": "new", "temperature": 0.3})
        doc = parse_document(path)
        assert doc.header == {"model": "b", "temperature": 0.3}
        assert doc.body == "new"

    def test_none_removes_header_field(self, agents: AgentManager, config: ChamberConfig):
        path = _write_md(config.agent_dir / "r.md", "---\nmodel: a\ntemperature: 0.2\n---\n\nbody")
        agents.update("r", {"temperature": None})
        assert parse_document(path).header == {"model": "a"}
        assert "null" not in path.read_text(encoding="utf-8")

    def test_project_document_preferred(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        project_md = _write_md(project / ".opencode" / "agent" / "r.md", "---\nmodel: p\n---\n")
        user_md = _write_md(config.agent_dir / "r.md", "---\nmodel: u\n---\n")
        agents.update("r", {"model": "changed"}, project)
        assert parse_document(project_md).header["model"] == "changed"
        assert parse_document(user_md).header["model"] == "u"

    def test_json_field_stays_in_json(self, agents: AgentManager, config: ChamberConfig):
        md = _write_md(config.agent_dir / "r.md", "---\ndescription: d\n---\n\nbody")
        _write_json(config.user_config_file, {"agent": {"r": {"model": "a"}}})

        for value in ["b", "c"]:
            agents.update("r", {"model": value})
            assert _read_json(config.user_config_file)["agent"]["r"]["model"] == value
            assert "model" not in parse_document(md).header

        agents.update("r", {"description": "e"})
        assert parse_document(md).header == {"description": "e"}
        assert _read_json(config.user_config_file)["agent"]["r"] == {"model": "c"}

    def test_block_commented_layer(self, agents: AgentManager, config: ChamberConfig):
        config.user_config_file.parent.mkdir(parents=True, exist_ok=True)
        config.user_config_file.write_text(
            '{\n  /* agents */\n  "agent": {"r": {"model": "a"}}\n}\n', encoding="utf-8"
        )
        assert agents.get_sources("r").json.fields == ["model"]
        agents.update("r", {"model": "b"})
        assert _read_json(config.user_config_file) == {"agent": {"r": {"model": "b"}}}

    def test_json_only_inline_prompt(self, agents: AgentManager, project: Path):
        _write_json(project / "opencode.json", {"agent": {"r": {"model": "a"}}})
        agents.update("r", {"prompt": "inline", "temperature": 0.5}, project)
        entry = _read_json(project / "opencode.json")["agent"]["r"]
        assert entry == {"model": "a", "prompt": "inline", "temperature": 0.5}

    def test_only_owning_layer_rewritten(self, tmp_path: Path, project: Path):
        config = ChamberConfig(
            config_root=tmp_path / "root", custom_config_path=tmp_path / "custom.json"
        )
        agents = AgentManager(config)
        _write_json(config.user_config_file, {"agent": {"r": {"model": "a"}}})
        _write_json(project / "opencode.json", {"theme": "dark"})
        custom = _write_json(tmp_path / "custom.json", {"theme": "light"})
        custom_before = custom.read_text(encoding="utf-8")

        agents.update("r", {"model": "b"}, project)

        assert _read_json(config.user_config_file)["agent"]["r"]["model"] == "b"
        assert custom.read_text(encoding="utf-8") == custom_before
        assert _read_json(project / "opencode.json") == {"theme": "dark"}
        assert not (project / "opencode.json.openchamber.backup").exists()
        assert (config.config_root / "opencode.json.openchamber.backup").exists()

    def test_file_reference_prompt(self, agents: AgentManager, config: ChamberConfig):
        entry = {"prompt": "{file:./prompts/reviewer.txt}", "model": "a"}
        _write_json(config.user_config_file, {"agent": {"reviewer": entry}})
        prompt_file = config.config_root / "prompts" / "reviewer.txt"

        agents.update("reviewer", {"prompt": "new text"})

        assert prompt_file.read_text(encoding="utf-8") == "new text"
        assert _read_json(config.user_config_file)["agent"]["reviewer"] == entry

    def test_invalid_file_reference(self, agents: AgentManager, config: ChamberConfig):
        _write_json(config.user_config_file, {"agent": {"r": {"prompt": "{file:  }"}}})
        before = config.user_config_file.read_text(encoding="utf-8")
        with pytest.raises(InvalidFileReferenceError):
            agents.update("r", {"prompt": "x"})
        assert config.user_config_file.read_text(encoding="utf-8") == before

    def test_builtin_override_fabricates_user_document(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        agents.update("build", {"model": "gpt", "temperature": 0.1}, project)

        user_md = config.agent_dir / "build.md"
        assert user_md.exists()
        assert not (project / ".opencode" / "agent" / "build.md").exists()
        assert not (project / "opencode.json").exists()
        doc = parse_document(user_md)
        assert doc.header == {"model": "gpt", "temperature": 0.1}
        assert doc.body == ""

        agents.update("build", {"prompt": "be brief"}, project)
        assert list(config.agent_dir.glob("build*")) == [user_md]
        doc = parse_document(user_md)
        assert doc.header == {"model": "gpt", "temperature": 0.1}
        assert doc.body == "be brief"

    def test_empty_json_entry_is_builtin(self, agents: AgentManager, config: ChamberConfig):
        _write_json(config.user_config_file, {"agent": {"plan": {}}})
        agents.update("plan", {"model": "m"})
        assert parse_document(config.agent_dir / "plan.md").header == {"model": "m"}
        assert _read_json(config.user_config_file) == {"agent": {"plan": {}}}

    def test_empty_update_writes_nothing(self, agents: AgentManager, config: ChamberConfig):
        agents.update("build", {})
        assert not (config.agent_dir / "build.md").exists()

    def test_prompt_normalized(self, agents: AgentManager, config: ChamberConfig):
        path = _write_md(config.agent_dir / "r.md", "---\nmodel: a\n---\n\nold")
        agents.update("r", {"prompt": None})
        assert parse_document(path).body == ""
        agents.update("r", {"prompt": 42})
        assert parse_document(path).body == "42"


class TestDelete:
    def test_removes_both_documents_and_json(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        project_md = _write_md(project / ".opencode" / "agent" / "r.md", "p")
        user_md = _write_md(config.agent_dir / "r.md", "u")
        _write_json(project / "opencode.json", {"agent": {"r": {"model": "x"}, "keep": {}}})

        assert agents.delete("r", project) is True
        assert not project_md.exists()
        assert not user_md.exists()
        assert _read_json(project / "opencode.json") == {"agent": {"keep": {}}}

    def test_only_authoritative_json_layer(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        _write_json(config.user_config_file, {"agent": {"r": {"model": "u"}}})
        _write_json(project / "opencode.json", {"agent": {"r": {"model": "p"}}})
        agents.delete("r", project)
        assert _read_json(project / "opencode.json") == {"agent": {}}
        assert _read_json(config.user_config_file) == {"agent": {"r": {"model": "u"}}}

    def test_user_document_without_working_directory(
        self, agents: AgentManager, config: ChamberConfig, project: Path
    ):
        project_md = _write_md(project / ".opencode" / "agent" / "r.md", "p")
        user_md = _write_md(config.agent_dir / "r.md", "u")
        agents.delete("r")
        assert project_md.exists()
        assert not user_md.exists()

    def test_builtin_disabled_in_user_layer(self, agents: AgentManager, config: ChamberConfig):
        assert agents.delete("build") is False
        assert _read_json(config.user_config_file) == {"agent": {"build": {"disable": True}}}

    def test_builtin_disabled_in_project_layer(self, agents: AgentManager, project: Path):
        _write_json(project / "opencode.json", {"theme": "dark"})
        agents.delete("build", project)
        assert _read_json(project / "opencode.json") == {
            "theme": "dark",
            "agent": {"build": {"disable": True}},
        }

    def test_builtin_disabled_in_custom_layer(self, tmp_path: Path, project: Path):
        config = ChamberConfig(
            config_root=tmp_path / "root", custom_config_path=tmp_path / "custom.json"
        )
        AgentManager(config).delete("build", project)
        assert _read_json(tmp_path / "custom.json") == {"agent": {"build": {"disable": True}}}
        assert not (project / "opencode.json").exists()


class TestReads:
    def test_get_scope(self, agents: AgentManager, config: ChamberConfig, project: Path):
        assert agents.get_scope("r", project) == (None, None)
        _write_md(config.agent_dir / "r.md", "u")
        assert agents.get_scope("r", project) == (Scope.USER, config.agent_dir / "r.md")

    def test_read_merged(self, agents: AgentManager, config: ChamberConfig, project: Path):
        _write_json(config.user_config_file, {"agent": {"r": {"model": "u", "mode": "all"}}})
        _write_json(project / "opencode.json", {"agent": {"r": {"model": "p"}}})
        assert agents.read_merged(project) == {"agent": {"r": {"model": "p", "mode": "all"}}}

    def test_get_manager(self, config: ChamberConfig):
        assert isinstance(get_manager("agent", config), AgentManager)

    def test_base_manager_is_abstract(self, config: ChamberConfig):
        with pytest.raises(TypeError):
            EntityManager(config)
