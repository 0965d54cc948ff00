import unittest

from jobpulse.core.extract import (
    clean_title,
    extract_company,
    extract_employment_type,
    extract_keywords,
    extract_location,
    extract_salary,
)


class ExtractCompanyTests(unittest.TestCase):
    def test_at_pattern(self):
        self.assertEqual(extract_company("Accountant at Nedbank"), "Nedbank")

    def test_dash_pattern(self):
        self.assertEqual(extract_company("Developer - Capitec Bank"), "Capitec Bank")

    def test_snippet_label(self):
        self.assertEqual(extract_company("Sales Rep", "Company: Shoprite. Apply now"), "Shoprite")

    def test_none_when_absent(self):
        self.assertIsNone(extract_company("Sales Rep", "Apply now"))


class ExtractFieldTests(unittest.TestCase):
    def test_clean_title(self):
        self.assertEqual(clean_title("Junior Accountant at Nedbank - Careers24"), "Junior Accountant")

    def test_location_city_gets_province(self):
        self.assertEqual(extract_location("Great role in Durban CBD"), "Durban, KwaZulu-Natal")

    def test_location_province_only(self):
        self.assertEqual(extract_location("Based in Limpopo"), "Limpopo")

    def test_location_default(self):
        self.assertEqual(extract_location("Remote friendly"), "South Africa")
        self.assertIsNone(extract_location("Remote friendly", default=None))

    def test_salary_range(self):
        self.assertEqual(extract_salary("Salary R25 000 - R35 000 per month"), "R25000 - R35000")

    def test_salary_k_suffix(self):
        self.assertEqual(extract_salary("R30k - R40k"), "R30000 - R40000")

    def test_salary_missing(self):
        self.assertIsNone(extract_salary("Market related"))

    def test_employment_type(self):
        self.assertEqual(extract_employment_type("Fixed-term contract role"), "contract")
        self.assertEqual(extract_employment_type("Part time cashier"), "part-time")
        self.assertEqual(extract_employment_type("Permanent position"), "full-time")
        self.assertIsNone(extract_employment_type("Cashier"))

    def test_keywords_search_terms_first(self):
        self.assertEqual(
            extract_keywords("Python and SQL dev", ["Data Engineer"]),
            ["data engineer", "python", "sql"],
        )


if __name__ == "__main__":
    unittest.main()
