#!/usr/bin/env python3
import asyncio
import concurrent.futures
import copy
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from pivot_bot.engine.callbacks import CALLBACKS, register_callback, run_callback
from pivot_bot.engine.errors import ConfigurationError, UnknownState
from pivot_bot.engine.extraction import (
    INVALID_OUTPUT,
    UNAVAILABLE,
    BaseExtractor,
    ExtractedValue,
    NoConfidentExtraction,
)
from pivot_bot.engine.states import STATE_DEFINITIONS
from pivot_bot.engine.table import StateTable, load_default_table
from pivot_bot.engine.transition import (
    DEFAULT_VALIDATION_MESSAGE,
    GENERIC_RETRY_MESSAGE,
    TransitionEngine,
)
from pivot_bot.engine.validators import CATEGORY_TAKEN
from pivot_bot.schemas import domain
from pivot_bot.schemas.state_models import ActionType, StateId

PHONE = "whatsapp:+972501111111"


class FakeExtractor(BaseExtractor):
    """Returns a fixed result and records every call."""

    def __init__(self, result=None):
        self.result = result if result is not None else NoConfidentExtraction()
        self.calls = []

    def extract(self, instruction, schema, raw_input, context):
        self.calls.append((schema.__name__, raw_input))
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def supplier_draft():
    return {
        "legalId": "123456789",
        "restaurantName": "מסעדת הים",
        "supplierName": "ירקות השדה",
        "supplierWhatsapp": "0501234567",
        "supplierCategories": ["vegetables"],
        "supplierReminders": [{"day": "sun", "hour": 11, "minute": 0}],
        "supplierProducts": [
            {"name": "עגבניות", "unit": "kg", "emoji": "🍅"},
            {"name": "חסה", "unit": "pcs", "emoji": "🥬"},
        ],
    }


class TestScenarios(unittest.TestCase):
    def setUp(self):
        self.extractor = FakeExtractor()
        self.engine = TransitionEngine(load_default_table(), extractor=self.extractor)

    def test_valid_legal_id_advances(self):
        context = {"companyName": "Acme Foods"}
        result = self.engine.process_turn(StateId.ONBOARDING_LEGAL_ID, context, "123456789")
        self.assertEqual(result.next_state_id, StateId.ONBOARDING_RESTAURANT_NAME)
        self.assertEqual(result.context, {"companyName": "Acme Foods", "legalId": "123456789"})
        self.assertEqual(result.token, "ok")
        self.assertFalse(result.validation_failed)
        self.assertIsNone(result.action)

    def test_invalid_legal_id_stays(self):
        context = {"companyName": "Acme Foods"}
        result = self.engine.process_turn(StateId.ONBOARDING_LEGAL_ID, context, "abc")
        self.assertEqual(result.next_state_id, StateId.ONBOARDING_LEGAL_ID)
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.context, {"companyName": "Acme Foods"})
        self.assertEqual(result.outbound.body, f"⚠️ {domain.LEGAL_ID_INVALID}")
        self.assertEqual(result.errors[0].field, "legal_id")

    def test_option_token_resolves_directly(self):
        result = self.engine.process_turn(StateId.INIT, {}, "new_restaurant")
        self.assertEqual(result.next_state_id, StateId.ONBOARDING_COMPANY_NAME)
        self.assertEqual(result.token, "new_restaurant")
        self.assertEqual(self.extractor.calls, [])

    def test_free_text_categories_through_ai(self):
        self.extractor.result = ExtractedValue({"category": ["vegetables", "fish"]})
        result = self.engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "ירקות, דגים")
        self.assertEqual(result.token, "aiValid")
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CONTACT)
        self.assertEqual(result.context["supplierCategories"], ["vegetables", "fish"])
        self.assertEqual(self.extractor.calls, [("SupplierCategories", "ירקות, דגים")])
        self.assertIn("ירקות 🥬, דגים 🐟", result.outbound.body)

    def test_add_supplier_archives_the_draft(self):
        context = supplier_draft()
        result = self.engine.process_turn(StateId.SETUP_SUPPLIERS_ADDITIONAL, context, "add_supplier")
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CATEGORY)
        self.assertEqual(result.context["suppliersList"], [{
            "name": "ירקות השדה",
            "whatsapp": "0501234567",
            "categories": ["vegetables"],
            "reminders": [{"day": "sun", "hour": 11, "minute": 0}],
            "products": context["supplierProducts"],
        }])
        for key in ("supplierName", "supplierWhatsapp", "supplierCategories", "supplierReminders", "supplierProducts"):
            self.assertNotIn(key, result.context)
        self.assertEqual(result.context["legalId"], "123456789")


class TestOptionPrecedence(unittest.TestCase):
    def test_option_ids_skip_validator_and_extractor(self):
        extractor = FakeExtractor(ExtractedValue({"category": ["fish"]}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        table = load_default_table()
        for state in table:
            for option in state.options:
                if option.id not in state.next_state:
                    continue
                result = engine.process_turn(state.id, supplier_draft(), option.id)
                self.assertEqual(result.token, option.id, f"{state.id.value}/{option.id}")
                self.assertFalse(result.validation_failed)
        self.assertEqual(extractor.calls, [])

    def test_category_option_sets_single_category(self):
        engine = TransitionEngine(load_default_table(), extractor=FakeExtractor())
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "vegetables")
        self.assertEqual(result.context["supplierCategories"], ["vegetables"])
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CONTACT)

    def test_reminder_preset_option(self):
        engine = TransitionEngine(load_default_table())
        result = engine.process_turn(StateId.SUPPLIER_REMINDERS, {"supplierName": "ירקות השדה"}, "sun_thu_11")
        self.assertEqual(result.next_state_id, StateId.PRODUCTS_LIST)
        self.assertEqual(result.context["supplierReminders"], [
            {"day": "sun", "hour": 11, "minute": 0},
            {"day": "thu", "hour": 11, "minute": 0},
        ])

    def test_skip_leaves_email_unset(self):
        engine = TransitionEngine(load_default_table())
        result = engine.process_turn(StateId.ONBOARDING_CONTACT_EMAIL, {"contactName": "ישראל"}, "skip")
        self.assertEqual(result.next_state_id, StateId.ONBOARDING_PAYMENT_METHOD)
        self.assertEqual(result.token, "skip")
        self.assertNotIn("contactEmail", result.context)


class TestAIExtraction(unittest.TestCase):
    def ai_only_engine(self, extractor):
        defs = copy.deepcopy(STATE_DEFINITIONS)
        definition = next(d for d in defs if d["id"] == "SUPPLIER_CONTACT")
        del definition["validator"]
        del definition["next_state"]["ok"]
        return TransitionEngine(StateTable.from_data(defs), extractor=extractor)

    def test_not_confident_without_validator_keeps_state(self):
        engine = self.ai_only_engine(FakeExtractor(NoConfidentExtraction()))
        context = {"supplierCategories": ["vegetables"]}
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, context, "ירקות השדה, 0501234567")
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CONTACT)
        self.assertEqual(result.context, context)
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.outbound.body, DEFAULT_VALIDATION_MESSAGE)

    def test_unavailable_without_validator_asks_to_retry(self):
        engine = self.ai_only_engine(FakeExtractor(NoConfidentExtraction(UNAVAILABLE, "timeout")))
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "ירקות השדה, 0501234567")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.outbound.body, GENERIC_RETRY_MESSAGE)

    def test_missing_extractor_counts_as_unavailable(self):
        engine = self.ai_only_engine(None)
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "ירקות השדה, 0501234567")
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CONTACT)
        self.assertEqual(result.outbound.body, GENERIC_RETRY_MESSAGE)

    def test_timeout_falls_back_to_validator(self):
        extractor = FakeExtractor(TimeoutError("slow"))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "ירקות השדה, 0501234567")
        self.assertEqual(result.token, "ok")
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_REMINDERS)
        self.assertEqual(result.context["supplierWhatsapp"], "0501234567")
        self.assertEqual(len(extractor.calls), 1)

    def test_not_confident_falls_back_to_validator(self):
        engine = TransitionEngine(load_default_table(), extractor=FakeExtractor())
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "ירקות, דגים")
        self.assertEqual(result.token, "ok")
        self.assertEqual(result.context["supplierCategories"], ["vegetables", "fish"])

    def test_extracted_data_is_checked_against_the_schema(self):
        extractor = FakeExtractor(ExtractedValue({"name": "ירקות השדה", "whatsapp": "12"}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "ירקות השדה")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CONTACT)
        self.assertNotIn("supplierName", result.context)

    def test_extracted_data_is_normalised(self):
        extractor = FakeExtractor(ExtractedValue({"name": "ירקות השדה", "whatsapp": "+972501234567"}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "הספק הוא ירקות השדה")
        self.assertEqual(result.token, "aiValid")
        self.assertEqual(result.context["supplierWhatsapp"], "0501234567")

    def test_empty_reply_does_not_call_the_extractor(self):
        extractor = FakeExtractor(ExtractedValue({"category": ["fish"]}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "   ")
        self.assertTrue(result.validation_failed)
        self.assertEqual(extractor.calls, [])

    def test_extractor_gets_a_copy_of_the_context(self):
        class MutatingExtractor(BaseExtractor):
            def extract(self, instruction, schema, raw_input, context):
                context["supplierName"] = "hijacked"
                return NoConfidentExtraction(INVALID_OUTPUT)

        engine = TransitionEngine(load_default_table(), extractor=MutatingExtractor())
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "ירקות")
        self.assertNotIn("supplierName", result.context)

    def test_cancelled_async_extraction_falls_back_to_validator(self):
        extractor = FakeExtractor(asyncio.CancelledError())
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, {}, "ירקות")
        self.assertEqual(result.token, "ok")
        self.assertEqual(result.context["supplierCategories"], ["vegetables"])

    def test_cancelled_extraction_without_validator_asks_to_retry(self):
        engine = self.ai_only_engine(FakeExtractor(concurrent.futures.CancelledError()))
        result = engine.process_turn(StateId.SUPPLIER_CONTACT, {}, "ירקות השדה, 0501234567")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.outbound.body, GENERIC_RETRY_MESSAGE)


class TestExtractedValuesAgainstContext(unittest.TestCase):
    """AI values go through the same context checks as validator values."""

    def covered_fish(self):
        return {"legalId": "123456789", "suppliersList": [{"name": "דגי הים", "categories": ["fish"]}]}

    def test_extracted_category_already_covered_is_rejected(self):
        extractor = FakeExtractor(ExtractedValue({"category": ["fish"]}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, self.covered_fish(), "דגים")
        self.assertEqual(len(extractor.calls), 1)
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.next_state_id, StateId.SUPPLIER_CATEGORY)
        self.assertNotIn("supplierCategories", result.context)
        self.assertIn(CATEGORY_TAKEN, result.outbound.body)

    def test_covered_category_without_validator_shows_the_reason(self):
        defs = copy.deepcopy(STATE_DEFINITIONS)
        definition = next(d for d in defs if d["id"] == "SUPPLIER_CATEGORY")
        del definition["validator"]
        del definition["next_state"]["ok"]
        engine = TransitionEngine(StateTable.from_data(defs), extractor=FakeExtractor(ExtractedValue({"category": ["fish"]})))

        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, self.covered_fish(), "דגים")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.errors[0].field, "category")
        self.assertTrue(result.outbound.body.startswith(f"⚠️ {CATEGORY_TAKEN}"))

    def test_uncovered_category_is_accepted(self):
        extractor = FakeExtractor(ExtractedValue({"category": ["vegetables"]}))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.SUPPLIER_CATEGORY, self.covered_fish(), "ירקות")
        self.assertEqual(result.token, "aiValid")
        self.assertEqual(result.context["supplierCategories"], ["vegetables"])

    def test_extracted_pars_must_cover_every_product(self):
        extractor = FakeExtractor(ExtractedValue({
            "products": [{"name": "עגבניות", "parMidweek": 10, "parWeekend": 15}],
        }))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.PRODUCTS_BASE_QTY, supplier_draft(), "עגבניות - 10, 15")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.next_state_id, StateId.PRODUCTS_BASE_QTY)
        self.assertIsNone(result.action)
        self.assertIn("חסה", result.outbound.body)
        self.assertEqual(result.context["supplierProducts"], supplier_draft()["supplierProducts"])

    def test_partial_extraction_falls_back_to_a_complete_reply(self):
        extractor = FakeExtractor(ExtractedValue({
            "products": [{"name": "עגבניות", "parMidweek": 10, "parWeekend": 15}],
        }))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(
            StateId.PRODUCTS_BASE_QTY, supplier_draft(), "עגבניות - 10, 15\nחסה - 5, 8"
        )
        self.assertEqual(result.token, "ok")
        self.assertEqual(result.next_state_id, StateId.SETUP_SUPPLIERS_ADDITIONAL)
        self.assertEqual(result.action.type, ActionType.CREATE_SUPPLIER)
        for product in result.action.payload["supplierProducts"]:
            self.assertIn("parMidweek", product)
            self.assertIn("parWeekend", product)

    def test_complete_extracted_pars_are_accepted(self):
        extractor = FakeExtractor(ExtractedValue({
            "products": [
                {"name": "עגבניות", "parMidweek": 10, "parWeekend": 15},
                {"name": "חסה", "parMidweek": 5, "parWeekend": 8},
            ],
        }))
        engine = TransitionEngine(load_default_table(), extractor=extractor)
        result = engine.process_turn(StateId.PRODUCTS_BASE_QTY, supplier_draft(), "כמו בשבוע שעבר")
        self.assertEqual(result.token, "aiValid")
        self.assertEqual(result.context["supplierProducts"][1]["parWeekend"], 8.0)


class TestEngineBehaviour(unittest.TestCase):
    def setUp(self):
        self.engine = TransitionEngine(load_default_table())

    def test_same_input_same_result(self):
        context = {"companyName": "Acme Foods"}
        snapshot = copy.deepcopy(context)
        first = self.engine.process_turn(StateId.ONBOARDING_LEGAL_ID, context, "123456789")
        second = self.engine.process_turn(StateId.ONBOARDING_LEGAL_ID, context, "123456789")
        self.assertEqual(first, second)
        self.assertEqual(context, snapshot)

    def test_caller_context_is_never_mutated(self):
        context = supplier_draft()
        snapshot = copy.deepcopy(context)
        self.engine.process_turn(StateId.SETUP_SUPPLIERS_ADDITIONAL, context, "add_supplier")
        self.engine.process_turn(StateId.PRODUCTS_BASE_QTY, context, "עגבניות - 10, 15\nחסה - 5, 8")
        self.assertEqual(context, snapshot)

    def test_choice_state_rejects_free_text(self):
        result = self.engine.process_turn(StateId.INIT, {}, "שלום")
        self.assertTrue(result.validation_failed)
        self.assertEqual(result.next_state_id, StateId.INIT)
        self.assertEqual(result.outbound.body, "❌ אנא בחר אחת מהאפשרויות.")
        self.assertEqual([o.id for o in result.outbound.options], ["new_restaurant", "help"])

    def test_choice_state_without_message_uses_default(self):
        result = self.engine.process_turn(StateId.SETUP_SUPPLIERS_START, {}, "אולי")
        self.assertEqual(result.outbound.body, DEFAULT_VALIDATION_MESSAGE)

    def test_placeholders_see_this_turns_callback(self):
        result = self.engine.process_turn(StateId.ONBOARDING_RESTAURANT_NAME, {}, "מסעדת הים")
        self.assertEqual(result.next_state_id, StateId.ONBOARDING_YEARS_ACTIVE)
        self.assertIn("מסעדת הים", result.outbound.body)

    def test_product_list_placeholder(self):
        result = self.engine.process_turn(
            StateId.PRODUCTS_LIST, {}, 'ק"ג: 🍅 עגבניות\nיח\': חסה'
        )
        self.assertEqual(result.next_state_id, StateId.PRODUCTS_BASE_QTY)
        self.assertIn('🍅 עגבניות (ק"ג) - ', result.outbound.body)
        self.assertIn("📦 חסה (יח') - ", result.outbound.body)

    def test_missing_placeholder_renders_empty_and_warns(self):
        with self.assertLogs("pivot", level="WARNING") as logs:
            message = self.engine.render(StateId.IDLE, {})
        self.assertIn("שלום !", message.body)
        self.assertTrue(any("contactName" in line for line in logs.output))

    def test_render_options(self):
        message = self.engine.render(StateId.ONBOARDING_PAYMENT_METHOD, {})
        self.assertEqual(message.kind, "list")
        self.assertEqual([o.id for o in message.options], ["credit_card", "trial"])

    def test_unknown_state(self):
        with self.assertRaises(UnknownState):
            self.engine.process_turn("NOT_A_STATE", {}, "hi")

    def test_initial_context(self):
        self.assertEqual(
            TransitionEngine.initial_context(PHONE, "https://pay/x"),
            {"contactNumber": PHONE, "paymentLink": "https://pay/x"},
        )


class TestActions(unittest.TestCase):
    def setUp(self):
        self.engine = TransitionEngine(load_default_table())

    def test_payment_method_emits_create_restaurant(self):
        context = {
            "contactNumber": PHONE,
            "companyName": "Acme Foods",
            "legalId": "123456789",
            "restaurantName": "מסעדת הים",
            "yearsActive": 5,
            "contactName": "ישראל ישראלי",
            "internalNote": "not exported",
        }
        result = self.engine.process_turn(StateId.ONBOARDING_PAYMENT_METHOD, context, "trial")
        self.assertEqual(result.next_state_id, StateId.SETUP_SUPPLIERS_START)
        self.assertEqual(result.action.type, ActionType.CREATE_RESTAURANT)
        self.assertEqual(result.action.state_id, StateId.ONBOARDING_PAYMENT_METHOD)
        self.assertEqual(result.action.payload["paymentMethod"], "trial")
        self.assertEqual(result.action.payload["legalId"], "123456789")
        self.assertNotIn("internalNote", result.action.payload)
        self.assertNotIn("contactEmail", result.action.payload)

    def test_failed_turn_emits_no_action(self):
        result = self.engine.process_turn(StateId.ONBOARDING_PAYMENT_METHOD, {}, "cash")
        self.assertIsNone(result.action)
        self.assertTrue(result.validation_failed)

    def test_par_levels_emit_create_supplier_snapshot(self):
        result = self.engine.process_turn(
            StateId.PRODUCTS_BASE_QTY, supplier_draft(), "עגבניות - 10, 15\nחסה - 5, 8"
        )
        self.assertEqual(result.next_state_id, StateId.SETUP_SUPPLIERS_ADDITIONAL)
        self.assertIn("ירקות השדה", result.outbound.body)
        action = result.action
        self.assertEqual(action.type, ActionType.CREATE_SUPPLIER)
        self.assertEqual(action.payload["supplierProducts"][0]["parMidweek"], 10.0)
        self.assertEqual(action.payload["supplierProducts"][1]["parWeekend"], 8.0)

        result.context["supplierProducts"][0]["name"] = "changed"
        self.assertEqual(action.payload["supplierProducts"][0]["name"], "עגבניות")


class TestWaitAndTerminalStates(unittest.TestCase):
    def setUp(self):
        self.engine = TransitionEngine(load_default_table())
        self.context = {"paymentLink": "https://pay.example/abc", "restaurantName": "מסעדת הים"}

    def test_wait_state_ignores_user_text(self):
        for text in ("שילמתי", "payment_confirmed"):
            result = self.engine.process_turn(StateId.WAITING_FOR_PAYMENT, self.context, text)
            self.assertEqual(result.next_state_id, StateId.WAITING_FOR_PAYMENT)
            self.assertFalse(result.validation_failed)
            self.assertIn("https://pay.example/abc", result.outbound.body)

    def test_payment_event_advances(self):
        result = self.engine.process_event(StateId.WAITING_FOR_PAYMENT, self.context, "payment_confirmed")
        self.assertEqual(result.next_state_id, StateId.SETUP_SUPPLIERS_START)
        self.assertEqual(result.token, "payment_confirmed")

    def test_payment_event_emits_activation(self):
        context = dict(self.context, legalId="123456789")
        result = self.engine.process_event(StateId.WAITING_FOR_PAYMENT, context, "payment_confirmed")
        self.assertEqual(result.action.type, ActionType.ACTIVATE_RESTAURANT)
        self.assertEqual(result.action.state_id, StateId.WAITING_FOR_PAYMENT)
        self.assertEqual(result.action.payload, {"legalId": "123456789"})

    def test_typed_text_in_wait_state_emits_nothing(self):
        result = self.engine.process_turn(StateId.WAITING_FOR_PAYMENT, self.context, "שילמתי")
        self.assertIsNone(result.action)

    def test_unknown_event_is_ignored(self):
        result = self.engine.process_event(StateId.WAITING_FOR_PAYMENT, self.context, "refund")
        self.assertEqual(result.next_state_id, StateId.WAITING_FOR_PAYMENT)

    def test_event_outside_wait_state_is_ignored(self):
        result = self.engine.process_event(StateId.INIT, {}, "payment_confirmed")
        self.assertEqual(result.next_state_id, StateId.INIT)

    def test_terminal_state_stays(self):
        result = self.engine.process_turn(StateId.RESTAURANT_FINISHED, self.context, "תודה")
        self.assertEqual(result.next_state_id, StateId.RESTAURANT_FINISHED)
        self.assertIn("מסעדת הים", result.outbound.body)


class TestCallbackFootprint(unittest.TestCase):
    def tearDown(self):
        CALLBACKS.pop("sneaky_writer", None)
        CALLBACKS.pop("sneaky_cleaner", None)

    def test_undeclared_write_is_rejected(self):
        @register_callback("sneaky_writer", writes=["companyName"])
        def sneaky_writer(context, value):
            context["companyName"] = value
            context["legalId"] = "000000000"

        with self.assertRaises(ConfigurationError) as ctx:
            run_callback("sneaky_writer", {}, "Acme")
        self.assertIn("legalId", str(ctx.exception))

    def test_undeclared_clear_is_rejected(self):
        @register_callback("sneaky_cleaner")
        def sneaky_cleaner(context, value):
            context.pop("legalId", None)

        with self.assertRaises(ConfigurationError):
            run_callback("sneaky_cleaner", {"legalId": "123456789"}, None)

    def test_unknown_callback(self):
        with self.assertRaises(ConfigurationError):
            run_callback("does_not_exist", {}, None)

    def test_archive_without_supplier_only_clears(self):
        context = {"supplierCategories": ["fish"], "suppliersList": [{"name": "א"}]}
        run_callback("archive_supplier", context, "finished")
        self.assertEqual(context, {"suppliersList": [{"name": "א"}]})


if __name__ == '__main__':
    unittest.main()
