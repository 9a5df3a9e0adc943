from relay_api.services.lead_extractor import LeadInfo, extract_lead_info


class TestExtractLeadInfo:
    def test_email_and_phone(self):
        lead = extract_lead_info("contact me at a@b.com or 0412345678")
        assert lead == LeadInfo(email="a@b.com", phone="0412345678")

    def test_nothing_found(self):
        assert extract_lead_info("just browsing, thanks") is None

    def test_empty_text(self):
        assert extract_lead_info("") is None
        assert extract_lead_info(None) is None

    def test_email_only(self):
        lead = extract_lead_info("mail jane.doe@example.com.au please")
        assert lead.email == "jane.doe@example.com.au"
        assert lead.phone is None

    def test_international_mobile_format(self):
        lead = extract_lead_info("call +61 412 345 678")
        assert lead.email is None
        assert lead.phone == "+61 412 345 678"

    def test_first_match_wins(self):
        lead = extract_lead_info("x@y.io then z@w.io")
        assert lead.email == "x@y.io"

    def test_is_deterministic(self):
        text = "reach me on 0498 765 432"
        assert extract_lead_info(text) == extract_lead_info(text)

    def test_as_dict(self):
        assert LeadInfo(email="a@b.com").as_dict() == {"email": "a@b.com", "phone": None}
