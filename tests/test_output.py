from __future__ import annotations

import io
import os
from pathlib import Path

from src.xmp_select.engine import SelectionResult
from src.xmp_select.errors import EvaluatorFailed
from src.xmp_select.output import (
    display_path,
    emit_formatted,
    emit_raw,
    escape_template_value,
    lookup_first,
    substitute_placeholders,
)
from tests.helpers.fakes import FakeEvaluator, make_tree


def _abs(root: Path, *names: str) -> list[bytes]:
    return [os.path.join(bytes(root), os.fsencode(name)) for name in names]


def test_emit_raw_writes_nul_terminated_paths() -> None:
    stream = io.BytesIO()
    result = SelectionResult(paths=(b"/r/a.jpg", b"/r/b c.tif"))

    assert emit_raw(result, stream) == 2
    assert stream.getvalue() == b"/r/a.jpg\0/r/b c.tif\0"


def test_emit_raw_empty_result_writes_nothing() -> None:
    stream = io.BytesIO()
    assert emit_raw(SelectionResult(paths=()), stream) == 0
    assert stream.getvalue() == b""


def test_display_path_substitutes_root() -> None:
    assert display_path(b"/lib/p/x/a.jpg", b"/lib/p", "~/Pictures/") == b"~/Pictures/x/a.jpg"
    assert display_path(b"/lib/p/a.jpg", b"/lib/p", "") == b"a.jpg"
    assert display_path(b"/other/a.jpg", b"/lib/p", "shown") == b"/other/a.jpg"


def test_substitute_placeholders_longest_name_and_escapes() -> None:
    template = "$XMP:Rating $XMP:RatingPercent ${XMP:Rating} $$XMP:Rating $FilePath"
    values = {"XMP:Rating": "5", "FilePath": "x.jpg"}

    rendered = substitute_placeholders(template, values)

    assert rendered == "5 $XMP:RatingPercent 5 $$XMP:Rating x.jpg"


def test_substitute_placeholders_prefers_longer_overlapping_name() -> None:
    values = {"Rating": "1", "RatingPercent": "20"}
    assert substitute_placeholders("$RatingPercent/$Rating", values) == "20/1"


def test_substitute_placeholders_without_values() -> None:
    assert substitute_placeholders("$FileName", {}) == "$FileName"


def test_escape_template_value() -> None:
    assert escape_template_value("cost$5") == "cost$$5"


def test_lookup_first_order_and_default() -> None:
    evaluator = FakeEvaluator(tags={("p.jpg", "XMP:Rating"): "3"})

    assert lookup_first(evaluator, "XMP:Rating", [b"p.xmp", b"p.jpg"], "0") == "3"
    assert lookup_first(evaluator, "XMP:Label", [b"p.xmp", b"p.jpg"], "none") == "none"


def test_lookup_first_skips_failing_source() -> None:
    class _Flaky(FakeEvaluator):
        def read_tag(self, path, tag, *, cwd=None):
            if path.endswith(b".xmp"):
                raise EvaluatorFailed(["exiftool"], 1, "Error: corrupt")
            return super().read_tag(path, tag, cwd=cwd)

    evaluator = _Flaky(tags={("p.jpg", "XMP:Rating"): "2"})

    assert lookup_first(evaluator, "XMP:Rating", [b"p.xmp", b"p.jpg"], "0") == "2"


def test_emit_formatted_sidecar_first_then_primary_then_default(photo_root: Path) -> None:
    make_tree(photo_root, ["e.jpg", "e.xmp", "f.jpg", "f.xmp"])
    evaluator = FakeEvaluator(
        tags={
            ("b.xmp", "XMP:Rating"): "4",
            ("b.tif", "XMP:Rating"): "1",
            ("e.jpg", "XMP:Rating"): "3",
        }
    )
    stream = io.BytesIO()

    count = emit_formatted(
        _abs(photo_root, "a.jpg", "b.tif", "e.jpg", "f.jpg"),
        evaluator,
        "$XMP:Rating $FilePath",
        root=photo_root,
        stream=stream,
        display_root="/show",
    )

    assert count == 4
    assert stream.getvalue().splitlines() == [
        b"$XMP:Rating /show/a.jpg",
        b"4 /show/b.tif",
        b"3 /show/e.jpg",
        b"0 /show/f.jpg",
    ]
    assert [path for path, _template in evaluator.renders] == [b"a.jpg", b"b.tif", b"e.jpg", b"f.jpg"]


def test_emit_formatted_skips_failed_and_vanished_files(photo_root: Path) -> None:
    evaluator = FakeEvaluator(render_fail=["a.jpg"])
    stream = io.BytesIO()

    count = emit_formatted(
        _abs(photo_root, "a.jpg", "gone.jpg", "d.jpg"),
        evaluator,
        "$FilePath",
        root=photo_root,
        stream=stream,
    )

    assert count == 1
    assert stream.getvalue() == b"d.jpg\n"


def test_emit_formatted_escapes_dollar_in_paths(tmp_path: Path) -> None:
    make_tree(tmp_path, ["cost$5.jpg"])
    evaluator = FakeEvaluator()
    stream = io.BytesIO()

    emit_formatted(_abs(tmp_path, "cost$5.jpg"), evaluator, "[$FilePath]", root=tmp_path, stream=stream)

    assert evaluator.renders[0][1] == "[cost$$5.jpg]"
    assert stream.getvalue() == b"[cost$5.jpg]\n"


def test_emit_formatted_is_idempotent(photo_root: Path) -> None:
    evaluator = FakeEvaluator(tags={("b.xmp", "XMP:Rating"): "5"})
    paths = _abs(photo_root, "a.jpg", "b.tif")
    outputs = []
    for _ in range(2):
        stream = io.BytesIO()
        emit_formatted(paths, evaluator, "$XMP:Rating $FilePath", root=photo_root, stream=stream)
        outputs.append(stream.getvalue())

    assert outputs[0] == outputs[1]
