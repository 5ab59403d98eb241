"""
Tests for the command-line entry point.
"""

import json

import pytest
import cv2
import run


class TestCompareCommand:

    def test_identical_images(self, tmp_path, capsys, textured_color):
        base = tmp_path / "base.png"
        target = tmp_path / "target.png"
        overlay = tmp_path / "overlay.png"
        cv2.imwrite(str(base), textured_color)
        cv2.imwrite(str(target), textured_color)

        code = run.main(["compare", str(base), str(target), "--overlay", str(overlay)])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["registered"] is True
        assert result["boxes"] == []
        assert overlay.exists()

    def test_unregistrable_pair(self, tmp_path, capsys, uniform_color, textured_color):
        base = tmp_path / "base.png"
        target = tmp_path / "target.png"
        cv2.imwrite(str(base), uniform_color)
        cv2.imwrite(str(target), textured_color)

        code = run.main(["compare", str(base), str(target)])

        assert code == 2
        assert json.loads(capsys.readouterr().out)["error"] == "degenerate_input"

    def test_missing_file(self, tmp_path, capsys):
        code = run.main(["compare", str(tmp_path / "nope.png"), str(tmp_path / "nope2.png")])
        assert code == 1
        assert "Could not load reference image" in capsys.readouterr().err


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
