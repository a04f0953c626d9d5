"""
Tests for text normalizers and extractors.
"""

from datetime import datetime

import pytest

from crawler.utils.normalizers import clean_text, normalize_company, parse_deadline
from crawler.utils.extractors import classify_conditions, extract_salary, extract_section


class TestNormalizers:
    def test_clean_text(self):
        assert clean_text("  백엔드\n   개발자\xa0") == "백엔드 개발자"
        assert clean_text("   ") is None
        assert clean_text(None) is None

    @pytest.mark.parametrize("raw,expected", [
        ("(주)카카오", "카카오"),
        ("㈜토스", "토스"),
        ("네이버 주식회사", "네이버"),
        ("당근", "당근"),
        ("", None),
    ])
    def test_normalize_company(self, raw, expected):
        assert normalize_company(raw) == expected

    @pytest.mark.parametrize("text,expected", [
        ("~ 2030.12.31", datetime(2030, 12, 31)),
        ("마감일 2030-01-05", datetime(2030, 1, 5)),
        ("~03.20(목)", datetime(2026, 3, 20)),
        ("12/31", datetime(2025, 12, 31)),
        ("상시채용", None),
        ("~ 2030.13.45", None),
        (None, None),
    ])
    def test_parse_deadline(self, text, expected):
        assert parse_deadline(text, now=datetime(2025, 6, 1)) == expected


class TestExtractors:
    def test_classify_conditions(self):
        result = classify_conditions(["서울 강남구", "신입·경력", "계약직", "연봉 4,000만원"])

        assert result == {
            'location': "서울 강남구",
            'experience_level': "신입·경력",
            'employment_type': "계약직",
            'salary': "연봉 4,000만원",
        }

    def test_extract_section(self):
        text = "주요업무 API 개발 자격요건 Python 3년 복지 재택"

        assert extract_section(text, 'requirements') == "Python 3년"
        assert extract_section(text, 'benefits') == "재택"
        assert extract_section("회사 소개", 'requirements') is None

    @pytest.mark.parametrize("text,expected", [
        ("연봉 4,000~6,000만원 협의", "연봉 4,000~6,000만원"),
        ("월 300 만원", "300 만원"),
        ("급여 회사내규에 따름", "회사내규에 따름"),
        ("경력 3년", None),
    ])
    def test_extract_salary(self, text, expected):
        assert extract_salary(text) == expected
