"""Tests for script validation."""

from bgjobs.validation import ScriptValidator, ValidationResult


class TestScriptValidator:
    """Test existence and extension checks."""

    def test_valid_script(self, make_script):
        result = ScriptValidator().validate(make_script("model.R"))
        assert result == ValidationResult.ok()
        assert result.valid

    def test_lowercase_extension(self, make_script):
        assert ScriptValidator().validate(make_script("model.r")).valid

    def test_empty_path(self):
        result = ScriptValidator().validate("")
        assert not result.valid
        assert result.reason == "No script path provided"

    def test_missing_file(self, tmp_path):
        path = str(tmp_path / "absent.R")
        result = ScriptValidator().validate(path)
        assert result.reason == f"File does not exist: {path}"

    def test_directory_rejected(self, tmp_path):
        folder = tmp_path / "dir.R"
        folder.mkdir()
        assert not ScriptValidator().validate(str(folder)).valid

    def test_wrong_extension(self, make_script):
        result = ScriptValidator().validate(make_script("notes.py"))
        assert not result.valid
        assert ".r" in result.reason

    def test_custom_extensions(self, make_script):
        validator = ScriptValidator(["py", ".SH"])
        assert validator.extensions == (".py", ".sh")
        assert validator.validate(make_script("run.py")).valid
        assert validator.validate(make_script("run.sh")).valid
        assert not validator.validate(make_script("run.R")).valid

    def test_any_extension(self, make_script):
        assert ScriptValidator([]).validate(make_script("Makefile")).valid
