import os
import tempfile
import unittest
from unittest import mock
from pathlib import Path

import numpy as np
import pandas as pd

import run
from staff_allocation.classifier import ConservationError, classify
from staff_allocation.config import GAConfig, load_config
from staff_allocation.data_loader import load_data, read_table
from staff_allocation.domains import CompatibilityIndex
from staff_allocation.events import EventLog
from staff_allocation.model import ANY_COURSE, Component, EligibilityRelation, RecordStatus, Teacher, TeachingRecord
from staff_allocation.pipeline import run_allocation
from staff_allocation.report import REPORT_COLUMNS, build_report, log_summary, summarize, write_report


def record(index, component, students, year="2024", term="1", course="ENG"):
    return TeachingRecord(index=index, year=year, term=term, component_id=component,
                          course_id=course, students=students)


class ReportTests(unittest.TestCase):
    def setUp(self):
        self.cfg = GAConfig()
        self.log = EventLog()
        self.teachers = {"T1": Teacher("T1", 40.0), "T2": Teacher("T2", 15.0)}
        self.components = {"C1": Component("C1", 2.0), "C2": Component("C2", None), "C3": Component("C3", 2.0)}
        index = CompatibilityIndex([
            EligibilityRelation("C1", "T1", [ANY_COURSE]),
            EligibilityRelation("C2", "T1", [ANY_COURSE]),
        ])
        self.records = [
            record(0, "C1", 20, year="2025"),
            record(1, "C2", 15, year="2024"),
            record(2, "C3", 8, year="2024", term="2"),
        ]
        classify(self.records, self.components, index, self.log)
        self.parameters = {"C1": 2.0, "C3": 2.0}

    def _build(self, assignment):
        return build_report(self.records, self.teachers, assignment, self.parameters, self.cfg, self.log)

    def test_allocated_row(self):
        report = self._build({0: "T1"})
        row = report.rows[report.rows["COMPONENT"] == "C1"].iloc[0]
        self.assertEqual(row["STATUS"], "ALLOCATED")
        self.assertEqual(row["TEACHER"], "T1")
        self.assertEqual(row["HOURS"], "10.000000")
        self.assertEqual(row["CAPACITY"], "40.000000")
        self.assertEqual(row["FINAL_HOURS"], "10.000000")
        self.assertEqual(row["BALANCE"], "30.000000")
        self.assertEqual(self.records[0].status, RecordStatus.ALLOCATED)

    def test_critical_records_never_receive_teacher(self):
        report = self._build({0: "T1", 1: "T1", 2: "T1"})
        critical = report.rows[report.rows["STATUS"].str.startswith("CRITICAL")]
        self.assertEqual(len(critical), 2)
        self.assertTrue((critical["TEACHER"] == "").all())
        self.assertTrue((critical["CAPACITY"] == "").all())
        self.assertEqual(self.records[1].status, RecordStatus.CRITICAL_NO_PARAMETER)
        self.assertEqual(self.records[2].status, RecordStatus.CRITICAL_NO_TEACHER)

    def test_idle_rows_and_order(self):
        report = self._build({0: "T1"})
        idle = report.rows[report.rows["STATUS"] == "IDLE"]
        self.assertEqual(list(idle["TEACHER"]), ["T2"])
        self.assertEqual(idle.iloc[0]["BALANCE"], "15.000000")
        keys = list(zip(report.rows["YEAR"], report.rows["TERM"], report.rows["TEACHER"], report.rows["COMPONENT"]))
        self.assertEqual(keys, sorted(keys))
        self.assertEqual(list(report.rows["STATUS"])[0], "IDLE")
        self.assertEqual(len(report.rows), 4)

    def test_summary_and_conservation(self):
        report = self._build({0: "T1"})
        s = report.summary
        self.assertTrue(s.conservation_ok)
        self.assertEqual(s.original_students, 43)
        self.assertEqual(s.idle_teachers, 1)
        self.assertEqual(s.negative_teachers, 0)
        self.assertEqual(s.max_teacher, "T1")
        self.assertEqual(s.grade, "EXCELLENT")

    def test_assignment_is_applied_once(self):
        self._build({0: "T1"})
        report = self._build({0: "T1"})
        self.assertEqual(self.teachers["T1"].allocated, 0.0)
        self.assertEqual(report.rows[report.rows["COMPONENT"] == "C1"].iloc[0]["STATUS"], "ALLOCATED")

    def test_absurd_hours_zeroed(self):
        self.records[0].students = 0
        report = self._build({0: "T1"})
        self.assertEqual(report.summary.absurd_hours, 1)
        self.assertEqual(self.records[0].hours, 0.0)
        self.assertEqual(self.teachers["T1"].allocated, 0.0)
        self.assertEqual(self.log.counts["absurd_hours_report"], 1)

    def test_report_conservation_mismatch_is_not_fatal(self):
        report = self._build({0: "T1"})
        rows = report.rows[report.rows["COMPONENT"] != "C1"]
        summary = summarize(self.records, self.teachers, rows, 0, self.cfg, self.log)
        self.assertFalse(summary.conservation_ok)
        log_summary(summary, self.log)
        self.assertEqual(self.log.counts["report_conservation"], 1)

    def test_write_report(self):
        report = self._build({0: "T1"})
        with tempfile.TemporaryDirectory() as tmp:
            out = write_report(report, os.path.join(tmp, "out", "report.csv"))
            back = pd.read_csv(out, sep=";", dtype=str, keep_default_na=False)
        self.assertEqual(list(back.columns), REPORT_COLUMNS)
        self.assertEqual(len(back), len(report.rows))


class DataLoadingTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, name, text):
        path = self.dir / name
        path.write_text(text, encoding="utf-8")
        return str(path)

    def _config(self, records, teachers, relations, components, **kw):
        return GAConfig(
            records_path=self._write("alunos.csv", records),
            teachers_path=self._write("docentes.csv", teachers),
            relations_path=self._write("hierarquias.csv", relations),
            components_path=self._write("componentes.csv", components),
            output_path=str(self.dir / "report.csv"),
            **kw,
        )

    def test_missing_file_is_empty_table(self):
        log = EventLog()
        df = read_table(str(self.dir / "nope.csv"), ["a", "b"], log)
        self.assertTrue(df.empty)
        self.assertEqual(list(df.columns), ["a", "b"])
        self.assertEqual(log.counts["missing_input"], 1)

    def test_load_tables(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n2024;1;C1;ENG;20\n2024;1;C2;ENG;abc\n",
            teachers='mat;ch\nT1;40\n"T2";15,5\nT1;99\n',
            relations="comp;mat;curso\nC1;T1;ENG\nC1;T1;\nC1;T1;ENG\nC1;T9;ENG\nC2;T2\n",
            components="comp;param\nC1;2\nC2;0\nC3;\nC4;abc\nC5;0.005\n",
        )
        log = EventLog()
        bundle = load_data(cfg, log)

        self.assertEqual([r.students for r in bundle.records], [20, 20, 0])
        self.assertEqual(list(bundle.teachers), ["T1", "T2"])
        self.assertEqual(bundle.teachers["T1"].capacity, 40.0)
        self.assertEqual(bundle.teachers["T2"].capacity, 15.0)
        self.assertEqual(log.counts["duplicate_teacher"], 1)

        rels = {(r.component_id, r.teacher_id): r.courses for r in bundle.relations}
        self.assertEqual(rels, {("C1", "T1"): ["ENG", ANY_COURSE], ("C2", "T2"): [ANY_COURSE]})
        self.assertEqual(log.counts["duplicate_relation"], 1)
        self.assertEqual(log.counts["unknown_teacher"], 1)

        self.assertEqual(bundle.components["C1"].parameter, 2.0)
        for cid in ("C2", "C3", "C4", "C5"):
            self.assertIsNone(bundle.components[cid].parameter, cid)
        self.assertEqual(log.counts["low_parameter"], 1)

    def test_header_is_first_non_empty_line(self):
        cfg = self._config(
            records="\n  \nano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n\n",
            teachers="\nmat;ch\n\nT1;40\n",
            relations="comp;mat;curso\nC1;T1;\n",
            components="\ncomp;param\nC1;2\n",
            population_size=10, generations=5, seed=11,
        )
        log = EventLog()
        bundle = load_data(cfg, log)
        self.assertEqual(list(bundle.teachers), ["T1"])
        self.assertEqual([(r.component_id, r.students) for r in bundle.records], [("C1", 20)])
        self.assertEqual(list(bundle.components), ["C1"])

        outcome = run_allocation(bundle, cfg, np.random.default_rng(11), log)
        self.assertEqual(outcome.search.best_score, 0)
        self.assertEqual(list(outcome.report.rows["STATUS"]), ["ALLOCATED"])

    def test_numeric_prefix_of_counts(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;12.7\n2024;1;C1;ENG;8 alunos\n2024;1;C1;ENG;x9\n",
            teachers="mat;ch\nT1;15,5\nT2;1.2e1h\nT3;-\n",
            relations="comp;mat;curso\nC1;T1;\n",
            components="comp;param\nC1;2\n",
        )
        bundle = load_data(cfg, EventLog())
        self.assertEqual([r.students for r in bundle.records], [12, 8, 0])
        self.assertEqual({t: v.capacity for t, v in bundle.teachers.items()},
                         {"T1": 15.0, "T2": 12.0, "T3": 0.0})

    def test_pipeline_example(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n",
            teachers="mat;ch\nT1;40\n",
            relations="comp;mat;curso\nC1;T1;\n",
            components="comp;param\nC1;2\n",
            population_size=10, generations=5, seed=11,
        )
        log = EventLog()
        outcome = run_allocation(load_data(cfg, log), cfg, np.random.default_rng(11), log)
        self.assertEqual(outcome.search.best_score, 0)
        row = outcome.report.rows.iloc[0]
        self.assertEqual((row["TEACHER"], row["HOURS"], row["STATUS"], row["BALANCE"]),
                         ("T1", "10.000000", "ALLOCATED", "30.000000"))

    def test_invalid_parameter_with_no_search(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n2024;1;C2;ENG;7\n",
            teachers="mat;ch\nT1;40\n",
            relations="comp;mat;curso\nC1;T1;\nC2;T1;\n",
            components="comp;param\nC1;0\nC2;\n",
            population_size=0, generations=0,
        )
        outcome = run_allocation(load_data(cfg, EventLog()), cfg)
        statuses = set(outcome.report.rows["STATUS"])
        self.assertEqual(statuses, {"CRITICAL_NO_PARAMETER", "IDLE"})
        self.assertTrue(outcome.report.summary.conservation_ok)

    def test_empty_teacher_table(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n",
            teachers="mat;ch\n",
            relations="comp;mat;curso\nC1;T1;\n",
            components="comp;param\nC1;2\n",
        )
        outcome = run_allocation(load_data(cfg, EventLog()), cfg)
        self.assertEqual(outcome.classification.records[0].status, RecordStatus.CRITICAL_NO_TEACHER)
        self.assertEqual(outcome.search.assignment, {})

    def test_cli_end_to_end(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n2024;1;C1;MAT;10\n",
            teachers="mat;ch\nT1;40\nT2;10\n",
            relations="comp;mat;curso\nC1;T1;\nC1;T2;MAT\n",
            components="comp;param\nC1;2\n",
        )
        history = str(self.dir / "history.csv")
        code = run.main([
            "--config", str(self.dir / "missing.yaml"),
            "--records", cfg.records_path, "--teachers", cfg.teachers_path,
            "--relations", cfg.relations_path, "--components", cfg.components_path,
            "--output", cfg.output_path, "--population", "6", "--generations", "4",
            "--seed", "5", "--history", history, "--audit-teacher", "T2",
        ])
        self.assertEqual(code, 0)
        out = pd.read_csv(cfg.output_path, sep=";", dtype=str, keep_default_na=False)
        self.assertEqual(int(out["STUDENTS"].astype(int).sum()), 30)
        self.assertTrue(Path(history).exists())

    def test_cli_conservation_failure_exits_with_error(self):
        cfg = self._config(
            records="ano;bim;comp;curso;qt\n2024;1;C1;ENG;20\n",
            teachers="mat;ch\nT1;40\n",
            relations="comp;mat;curso\nC1;T1;\n",
            components="comp;param\nC1;2\n",
        )
        with mock.patch("staff_allocation.pipeline.classify", side_effect=ConservationError(20, 15)):
            code = run.main([
                "--config", str(self.dir / "missing.yaml"),
                "--records", cfg.records_path, "--teachers", cfg.teachers_path,
                "--relations", cfg.relations_path, "--components", cfg.components_path,
                "--output", cfg.output_path,
            ])
        self.assertEqual(code, 1)
        self.assertFalse(Path(cfg.output_path).exists())

    def test_config_file(self):
        path = self._write("config.yaml", "population_size: 12\ngenerations: 3\nunknown: 1\n")
        cfg = load_config(path)
        self.assertEqual((cfg.population_size, cfg.generations), (12, 3))
        self.assertEqual(cfg.with_overrides(generations=9, seed=None).generations, 9)
        bad = self._write("bad.yaml", "- 1\n- 2\n")
        with self.assertRaises(ValueError):
            load_config(bad)


if __name__ == "__main__":
    unittest.main()
