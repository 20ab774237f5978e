from dataclasses import replace

import pytest

from replyo.conversations import engine
from replyo.conversations.flows import get_conversation_flow
from replyo.conversations.types import (
    BOOK,
    END,
    FOLLOW_UP,
    LOCATION,
    PRICES,
    QUALIFY,
    QUALIFY_TIMING,
    QUESTION,
    START,
    BusinessData,
    ConversationSession,
    FlowState,
    QuickReply,
)


class TestNormalizeText:
    def test_strips_emoji_and_punctuation(self):
        assert engine.normalize_text("💅 Book an appointment!") == "book an appointment"

    def test_collapses_whitespace(self):
        assert engine.normalize_text("  Prices   &  services ") == "prices services"

    def test_handles_empty_input(self):
        assert engine.normalize_text("") == ""
        assert engine.normalize_text(None) == ""

    def test_underscore_is_a_word_character(self):
        assert engine.normalize_text("Gel_Nails!") == "gel_nails"


class TestDetectIntent:
    @pytest.mark.parametrize(
        "text,intent",
        [
            ("Can I book for Friday?", "BOOKING"),
            ("how much is a facial", "PRICING"),
            ("What's your address?", "LOCATION"),
            ("What styles do you do?", "SERVICES"),
        ],
    )
    def test_detects_intents(self, text, intent):
        assert engine.detect_intent(text) == intent

    def test_multiword_pattern_matches(self):
        assert engine.detect_intent("HOW MUCH") == "PRICING"

    def test_booking_wins_over_pricing(self):
        assert engine.detect_intent("book me in, what's the price") == "BOOKING"

    def test_no_intent(self):
        assert engine.detect_intent("hello") is None


class TestCalculateSimilarity:
    def test_identical(self):
        assert engine.calculate_similarity("nail services", "nail services") == 1.0

    def test_partial_word_containment(self):
        assert engine.calculate_similarity("nails", "nail services") == 0.5

    def test_empty(self):
        assert engine.calculate_similarity("", "nail") == 0.0


class TestDetermineNextState:
    def setup_method(self):
        self.flow = get_conversation_flow("beauty")

    def test_exact_quick_reply_title(self, session):
        assert engine.determine_next_state(self.flow[START], "📍 Location & hours", session) == LOCATION

    def test_title_without_emoji_matches(self, session):
        assert engine.determine_next_state(self.flow[START], "prices & services", session) == PRICES

    def test_booking_intent_unqualified_goes_to_qualify(self, session):
        assert engine.determine_next_state(self.flow[START], "I want to book", session) == QUALIFY

    def test_booking_intent_qualified_goes_to_book(self, session):
        qualified = replace(session, is_qualified=True)
        assert engine.determine_next_state(self.flow[START], "I want to book", qualified) == BOOK

    def test_pricing_intent(self, session):
        assert engine.determine_next_state(self.flow[START], "how much?", session) == PRICES

    def test_fuzzy_match(self, session):
        state = FlowState(message="x", quick_replies=[QuickReply("Glitter gel nails deluxe", END)])
        assert engine.determine_next_state(state, "glitter gel nails", session) == END

    def test_falls_back_to_question(self, session):
        assert engine.determine_next_state(self.flow[START], "hmm okay", session) == QUESTION


class TestExtractQualificationValue:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("🚨 Emergency NOW", "emergency"),
            ("📅 Today", "today"),
            ("ASAP please", "today"),
            ("sometime this week", "this_week"),
            ("🗓️ Next week", "planning"),
            ("no idea", "this_week"),
        ],
    )
    def test_urgency(self, text, expected):
        assert engine.extract_qualification_value("lead_urgency", text) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("it's my first time", "first_time"),
            ("I've been before", "returning"),
            ("comparing a few places", "comparison"),
            ("just curious", "first_time"),
        ],
    )
    def test_intent(self, text, expected):
        assert engine.extract_qualification_value("lead_intent", text) == expected

    def test_other_fields_keep_trimmed_text(self):
        assert engine.extract_qualification_value("lead_service", "  💅 Nail services ") == "💅 Nail services"


class TestGenerateMessage:
    def test_template_placeholders(self, session):
        state = FlowState(message="Visit {{business_name}} at {{location}} or call {{phone}}")
        business = BusinessData(business_name="Glow", location="High St")
        assert engine.generate_message(state, business, session) == "Visit Glow at High St or call us"

    def test_service_placeholder(self, session):
        state = FlowState(message="Booking {{service}}")
        with_service = replace(session, lead_data={"lead_service": "lashes"})
        assert engine.generate_message(state, BusinessData(), with_service) == "Booking lashes"

    def test_callable_message(self, session, business_data):
        state = FlowState(message=lambda business, s: f"Hi from {business.business_name}")
        assert engine.generate_message(state, business_data, session) == "Hi from Glow Studio"


class TestProcessMessage:
    def test_full_beauty_path(self, business_data):
        flow = get_conversation_flow("beauty")
        session = ConversationSession(conversation_id="c1")

        result = engine.process_message(flow, session, "💅 Book an appointment", business_data)
        assert result.state == QUALIFY
        assert result.should_qualify is True
        assert result.qualification_data == {}

        session = replace(session, current_state=QUALIFY)
        result = engine.process_message(flow, session, "💅 Nail services", business_data)
        assert result.state == QUALIFY_TIMING
        assert result.qualification_data == {"lead_service": "💅 Nail services"}

        session = replace(
            session,
            current_state=QUALIFY_TIMING,
            lead_data={"lead_service": "💅 Nail services"},
            is_qualified=True,
        )
        result = engine.process_message(flow, session, "📅 Today", business_data)
        assert result.state == BOOK
        assert result.qualification_data == {"lead_urgency": "today"}
        assert result.is_booking_attempt is True
        assert result.should_follow_up is True
        assert result.follow_up_hours == 12
        assert "💅 Nail services" in result.message
        assert business_data.booking_link in result.message

    def test_unknown_state_treated_as_start(self, business_data):
        flow = get_conversation_flow("beauty")
        session = ConversationSession(conversation_id="c1", current_state="NOPE")
        result = engine.process_message(flow, session, "📍 Location & hours", business_data)
        assert result.state == LOCATION
        assert business_data.location in result.message

    def test_plumbing_emergency_booking(self):
        flow = get_conversation_flow("plumber")
        business = BusinessData(business_name="Pipe Pros", phone="0800 111")
        session = ConversationSession(
            conversation_id="c1",
            current_state=QUALIFY_TIMING,
            industry="plumbing",
            lead_data={"lead_service": "Leak repair"},
            is_qualified=True,
        )
        result = engine.process_message(flow, session, "🚨 Emergency NOW", business)
        assert result.state == BOOK
        assert result.qualification_data == {"lead_urgency": "emergency"}
        assert "Emergency service for Leak repair" in result.message
        assert "0800 111" in result.message
        assert result.follow_up_hours == 6


class TestRenderState:
    def test_follow_up_first_and_last(self, business_data):
        flow = get_conversation_flow("beauty")
        first = engine.render_state(flow, FOLLOW_UP, ConversationSession(conversation_id="c"), business_data)
        assert first.state == FOLLOW_UP
        assert "Hi again" in first.message
        assert first.follow_up_hours == 48

        later = ConversationSession(conversation_id="c", lead_data={"follow_up_count": 1})
        last = engine.render_state(flow, FOLLOW_UP, later, business_data)
        assert "Last chance" in last.message


class TestShouldSendFollowUp:
    def test_first_follow_up_after_12_hours(self, session):
        assert engine.should_send_follow_up(session, 11.9) is False
        assert engine.should_send_follow_up(session, 12) is True

    def test_second_follow_up_after_48_hours(self):
        session = ConversationSession(conversation_id="c", lead_data={"follow_up_count": 1})
        assert engine.should_send_follow_up(session, 47) is False
        assert engine.should_send_follow_up(session, 48) is True

    def test_string_count_is_compared_as_int(self):
        session = ConversationSession(conversation_id="c", lead_data={"follow_up_count": "2"})
        assert engine.should_send_follow_up(session, 100) is False

    def test_never_after_booking_or_end(self, session):
        assert engine.should_send_follow_up(replace(session, has_booked=True), 100) is False
        assert engine.should_send_follow_up(replace(session, current_state=END), 100) is False
