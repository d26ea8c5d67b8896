"""Tests for the command line interface"""

import json

import pytest

from tap_cli.cli import cli, create_parser


def test_no_command_prints_help(capsys):
    assert cli([]) == 0
    assert "usage: tap" in capsys.readouterr().out


def test_sentences_table(annotator_files, capsys):
    assert cli(["sentences", *map(str, annotator_files)]) == 0

    out = capsys.readouterr().out
    assert "Authors: anna, ben" in out
    assert "S1\t✅\tThe cat sleeps" in out
    assert "S2\t⚠️ 1\tBig dogs bark" in out
    assert "S3\t➖ 2\tShe runs fast" in out


def test_sentences_json_with_filters(annotator_files, capsys):
    assert cli(["sentences", *map(str, annotator_files), "--only-diff", "--search", "dogs", "--format", "json"]) == 0

    items = json.loads(capsys.readouterr().out)
    assert [i["sent_id"] for i in items] == [2]


def test_tree(annotator_files, capsys):
    assert cli(["tree", *map(str, annotator_files), "--sentence", "1", "--show-pos"]) == 0

    out = capsys.readouterr().out
    assert "🌱 3:sleeps[{VERB|_}]" in out
    assert "Authors: 2 · Edge union: 3" in out


def test_tree_to_file(annotator_files, tmp_path, capsys):
    target = tmp_path / "tree.txt"
    assert cli(["tree", *map(str, annotator_files), "--sentence", "3", "--output", str(target)]) == 0

    assert target.read_text(encoding="utf-8").startswith("📝 S3: She runs fast")


def test_tree_rejects_zero(annotator_files, capsys):
    assert cli(["tree", *map(str, annotator_files), "--sentence", "0"]) == 2
    assert "1-based" in capsys.readouterr().err


def test_gold_to_file(annotator_files, tmp_path, capsys):
    target = tmp_path / "gold.conllu"
    code = cli([
        "gold", *map(str, annotator_files),
        "--author-a", "anna", "--author-b", "ben",
        "--mode", "intersection", "-o", str(target)
    ])

    assert code == 0
    text = target.read_text(encoding="utf-8")
    assert text.startswith("# sent_id = 1\n")
    assert "# gold_mode = intersection; label=preferA; tokens=preferA; sentCount=max" in text
    assert "3 sentences, 2 conflict notes" in capsys.readouterr().out


def test_gold_to_stdout_without_diagnostics(annotator_files, capsys):
    code = cli([
        "gold", *map(str, annotator_files),
        "--author-a", "ben", "--author-b", "anna",
        "--no-comments", "--no-misc"
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith("1\tThe\t_\tDET\t_\t_\t2\tdet\t_\t_\n")
    assert "#" not in out
    assert "3\tfast\t_\tADV\t_\t_\t1\tadvmod\t_\t_" in out


def test_gold_uses_configured_defaults(annotator_files, tmp_path, capsys):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "settings.json").write_text(json.dumps({"gold": {"mode": "preferB"}}), encoding="utf-8")

    assert cli(["gold", *map(str, annotator_files), "--author-a", "anna", "--author-b", "ben"]) == 0
    assert "# gold_mode = preferB;" in capsys.readouterr().out


def test_configured_log_file(annotator_files, tmp_path, capsys):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "settings.json").write_text(json.dumps({"logging": {"file": "run.log"}}), encoding="utf-8")

    assert cli(["-v", "sentences", *map(str, annotator_files)]) == 0
    assert "Loaded 2 annotators" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")


def test_gold_with_invalid_settings(annotator_files, tmp_path, capsys):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "settings.json").write_text(json.dumps({"gold": {"mode": "majority"}}), encoding="utf-8")

    args = ["gold", *map(str, annotator_files), "--author-a", "anna", "--author-b", "ben"]
    assert cli(args) == 78
    assert "Configuration error" in capsys.readouterr().err

    assert cli([*args, "--mode", "preferA"]) == 0


def test_gold_same_author_is_usage_error(annotator_files, capsys):
    code = cli(["gold", *map(str, annotator_files), "--author-a", "anna", "--author-b", "anna"])

    assert code == 2
    assert "two different annotators" in capsys.readouterr().err


def test_gold_invalid_mode_exits(annotator_files):
    with pytest.raises(SystemExit) as excinfo:
        cli(["gold", *map(str, annotator_files), "--author-a", "a", "--author-b", "b", "--mode", "majority"])

    assert excinfo.value.code == 2


def test_missing_input(capsys):
    assert cli(["sentences"]) == 2
    assert "No annotator files given" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert cli(["sentences", str(tmp_path / "missing.conllu")]) == 1
    assert "File not found" in capsys.readouterr().err


def test_directory_input(tmp_path, anna_text, ben_text, capsys):
    corpus = tmp_path / "corpus"
    (corpus / "doc1").mkdir(parents=True)
    (corpus / "doc2").mkdir()
    (corpus / "doc1" / "anna.conllu").write_text(anna_text, encoding="utf-8")
    (corpus / "doc1" / "ben.conllu").write_text(ben_text, encoding="utf-8")
    (corpus / "doc2" / "carl.conllu").write_text(anna_text, encoding="utf-8")

    assert cli(["sentences", "--dir", str(corpus), "--doc", "doc2"]) == 0
    out = capsys.readouterr().out
    assert "Document: doc2" in out
    assert "Authors: carl" in out

    assert cli(["sentences", "--dir", str(corpus), "--doc", "doc3"]) == 2
    assert "Unknown document 'doc3'" in capsys.readouterr().err


def test_parser_server_command():
    args = create_parser().parse_args(["server", "start", "--port", "9000"])

    assert args.command == "server"
    assert args.server_command == "start"
    assert args.port == 9000


def test_gold_with_duplicate_file_names(tmp_path, anna_text, ben_text, capsys):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    first = tmp_path / "a" / "anna.conllu"
    second = tmp_path / "b" / "anna.conllu"
    first.write_text(anna_text, encoding="utf-8")
    second.write_text(ben_text, encoding="utf-8")

    args = ["gold", str(first), str(second)]
    assert cli([*args, "--author-a", "anna", "--author-b", str(second)]) == 2
    assert "ambiguous" in capsys.readouterr().err

    assert cli([*args, "--author-a", str(first), "--author-b", str(second), "--mode", "preferB"]) == 0
    assert "# gold_from = anna | anna" in capsys.readouterr().out
