from isoforest.demo import main


def test_demo_writes_points_and_reports_scores(tmp_path, capsys):
    outfile = tmp_path / "points.csv"

    assert main(["--seed", "3", "--outfile", str(outfile)]) == 0

    lines = outfile.read_text(encoding="utf-8").splitlines()
    kinds = [line.split(",")[0] for line in lines]
    assert kinds.count("training") == 100 + 1000
    assert kinds.count("control") == 10 + 100
    assert kinds.count("outlier") == 10 + 100

    output = capsys.readouterr().out
    assert "Test 1:" in output
    assert "Test 2:" in output
    assert "Average of outlier test samples (normalized):" in output
