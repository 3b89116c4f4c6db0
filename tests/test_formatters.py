"""Tests for the transcript and summary exporters and the local summary."""

from datetime import timedelta

from meet_assistant.core.ir import MeetingTranscript
from meet_assistant.core.summary import generate_local_summary
from meet_assistant.formatters import FORMATTERS
from meet_assistant.formatters.summary_export import SummaryExportFormatter
from meet_assistant.formatters.transcript_export import TranscriptExportFormatter

from conftest import FIXED_NOW, make_entry


def _meeting(entries, summary=None):
    return MeetingTranscript(
        entries=entries,
        speaker_names=["علی", "سارا"],
        generated_at=FIXED_NOW,
        summary=summary,
    )


class TestRegistry:

    def test_keys(self):
        assert set(FORMATTERS) == {"transcript", "summary"}

    def test_every_formatter_has_a_name(self):
        for formatter_cls in FORMATTERS.values():
            assert formatter_cls().name


class TestTranscriptExport:

    def test_filename_and_media_type(self, sample_entries):
        output = TranscriptExportFormatter().format(_meeting(sample_entries))[0]
        assert output.filename == "google-meet-2024-05-01.txt"
        assert output.media_type.startswith("text/plain")

    def test_header(self, sample_entries):
        content = TranscriptExportFormatter().format(_meeting(sample_entries))[0].content
        assert content.startswith("متن جلسه Google Meet\n")
        assert "تعداد پیام‌ها: 3" in content
        assert "شرکت‌کنندگان: علی, سارا" in content

    def test_numbered_entries(self, sample_entries):
        content = TranscriptExportFormatter().format(_meeting(sample_entries))[0].content
        assert "1. [10:30:00] علی\n   سلام به همه، جلسه را شروع می‌کنیم" in content
        assert "2. [10:30:00] سارا (اعتماد: 90%) 💭\n   گزارش فروش این ماه کجاست؟" in content
        assert "3. [10:30:00] علی\n   باشه" in content

    def test_summary_included_when_present(self, sample_entries):
        content = TranscriptExportFormatter().format(
            _meeting(sample_entries, summary="جمع‌بندی"),
        )[0].content
        assert "خلاصه جلسه:\nجمع‌بندی" in content

    def test_summary_omitted_when_absent(self, sample_entries):
        content = TranscriptExportFormatter().format(_meeting(sample_entries))[0].content
        assert "خلاصه جلسه:" not in content


class TestSummaryExport:

    def test_layout(self, sample_entries):
        output = SummaryExportFormatter().format(_meeting(sample_entries, summary="جمع‌بندی"))[0]
        assert output.filename == "meeting-summary-2024-05-01.txt"
        lines = output.content.splitlines()
        assert lines[0] == "خلاصه جلسه"
        assert lines[1] == "تاریخ: 2024-05-01"
        assert "جمع‌بندی" in lines
        index = lines.index("متن کامل جلسه:")
        assert lines[index + 1] == "{} - علی: سلام به همه، جلسه را شروع می‌کنیم".format(
            FIXED_NOW.isoformat()
        )


class TestLocalSummary:

    def test_sections(self, sample_entries):
        summary = generate_local_summary(sample_entries, ["علی", "سارا"], FIXED_NOW)
        assert summary.startswith("خلاصه جلسه - 2024-05-01")
        assert "• علی\n• سارا" in summary
        assert "• علی: سلام به همه، جلسه را شروع می‌کنیم" in summary
        assert "سوالات مطرح شده:\n• گزارش فروش این ماه کجاست؟" in summary
        assert "تعداد کل پیام‌ها: 3" in summary
        assert "مدت زمان تقریبی: 1 دقیقه" in summary

    def test_short_entries_are_not_key_points(self):
        summary = generate_local_summary([make_entry("باشه")], ["علی"], FIXED_NOW)
        assert "• علی: باشه" not in summary

    def test_questions_section_omitted_without_questions(self):
        summary = generate_local_summary([make_entry("جلسه خوب پیش رفت")], ["علی"], FIXED_NOW)
        assert "سوالات مطرح شده" not in summary

    def test_key_points_capped_at_ten(self):
        entries = [
            make_entry("این یک نکته بسیار مهم شماره {} است".format(i), timestamp=FIXED_NOW + timedelta(minutes=i))
            for i in range(15)
        ]
        summary = generate_local_summary(entries, ["علی"], FIXED_NOW)
        assert summary.count("• علی: ") == 10
        assert "مدت زمان تقریبی: 5 دقیقه" in summary
