from chat_ledger.models import UserProfile

DEFAULT_LANGUAGE = "en"

# Neutral reply when the interpreter gave neither a question nor an error.
PLACEHOLDER_REPLY = "?"

ADMIN_HELP = """🛠️ Admin Commands:

/debug on  — enable debug mode (show internal data)
/debug off — disable debug mode
/reset     — delete user and start fresh
/note TEXT — save note to logs for developer
/info      — show this help

ps: TEXT   — same as /note (save feedback to logs)"""

CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "admin_help": ADMIN_HELP,
        "debug_on": "🔧 Debug mode ON — you'll see internal data with each response",
        "debug_off": "🔧 Debug mode OFF",
        "debug_status": "🔧 Debug mode: {status}\nUse: /debug on or /debug off",
        "reset_done": "🗑️ User deleted. Send any message to start fresh!",
        "note_saved": "📝 Noted! (saved to logs for developer)",
        "learning_saved": '✅ Remembered: "{instruction}"',
        "learning_declined": "👌 OK, not saving it",
        "learning_question": '💡 Remember: "{instruction}"? (yes/no)',
        "onboarding_skipped": (
            "OK! Setup skipped. Default accounts: CARD, CASH. Default category: GENERAL. "
            "You can now record expenses! Example: 'coffee 500 EUR'"
        ),
        "onboarding_retry": "Sorry, something went wrong. Please try again.",
        "onboarding_ask_accounts": "Let's set things up. Which accounts do you use (card, cash, ...)?",
        "onboarding_ask_funds": "What expense categories do you want to track (food, transport, ...)?",
        "onboarding_ask_currency": "What is your main currency?",
        "onboarding_ask_name": "What is your name?",
        "onboarding_ask_linked_users": "Do you share finances with someone?",
        "onboarding_completed": "All set! Try: 'coffee 300'",
        "nothing_to_undo": "No operations to undo",
        "undo_done": "Undo: {description}",
        "meta_done": "✅ Done",
        "instruction_exists": " (already known)",
        "default_account_set": "📌 Default account: {value}",
        "default_currency_set": "📌 Default currency: {value}",
        "default_fund_set": "📌 Default fund: {value}",
        "recorded_expense": "✅ Recorded expense: {amount} {currency} to {fund} ({account})",
        "recorded_income": "✅ Recorded income: {amount} {currency} to account {account}",
        "recorded_transfer": "✅ Recorded transfer: {amount} {currency} from {account} to {second_account}",
        "recorded_credit": "✅ Recorded credit operation: {amount} {currency}",
        "recorded_generic": "✅ Operation recorded",
        "recorded_many": "✅ Recorded {count} operations:",
        "short_income": "income",
        "short_transfer": "transfer",
        "short_credit": "credit",
        "short_generic": "operation",
        "corrected": "✏️ Fixed: ",
        "settings_name": "Name",
        "settings_currency": "Default currency",
        "settings_account": "Default account",
        "settings_fund": "Default fund",
        "settings_accounts": "Accounts",
        "settings_funds": "Funds",
        "settings_linked": "Linked users",
        "settings_instructions": "Instructions",
        "settings_empty": "No settings yet.",
    },
    "ru": {
        "debug_on": "🔧 Debug mode ON — внутренние данные будут в каждом ответе",
        "debug_off": "🔧 Debug mode OFF",
        "debug_status": "🔧 Debug mode: {status}\nИспользуй: /debug on или /debug off",
        "reset_done": "🗑️ Пользователь удалён. Напиши любое сообщение, чтобы начать заново!",
        "note_saved": "📝 Noted! (сохранено в логи для разработчика)",
        "learning_saved": '✅ Запомнил: "{instruction}"',
        "learning_declined": "👌 Ок, не запоминаю",
        "learning_question": '💡 Запомнить: "{instruction}"? (да/нет)',
        "onboarding_skipped": (
            "Ок! Настройка пропущена. Счета: CARD, CASH. Категория: GENERAL. "
            "Можно записывать расходы! Например: 'кофе 500 RSD'"
        ),
        "onboarding_retry": "Что-то пошло не так. Попробуй ещё раз.",
        "onboarding_ask_accounts": "Давай настроимся. Какие у тебя счета (карта, наличные, ...)?",
        "onboarding_ask_funds": "Какие категории расходов вести (еда, транспорт, ...)?",
        "onboarding_ask_currency": "Какая у тебя основная валюта?",
        "onboarding_ask_name": "Как тебя зовут?",
        "onboarding_ask_linked_users": "Ведёшь общий бюджет с кем-то?",
        "onboarding_completed": "Готово! Попробуй: 'кофе 300'",
        "nothing_to_undo": "Нечего отменять",
        "undo_done": "Отменил: {description}",
        "meta_done": "✅ Готово",
        "instruction_exists": " (уже было)",
        "default_account_set": "📌 Счёт по умолчанию: {value}",
        "default_currency_set": "📌 Валюта по умолчанию: {value}",
        "default_fund_set": "📌 Фонд по умолчанию: {value}",
        "recorded_expense": "✅ Записал расход: {amount} {currency} на {fund} ({account})",
        "recorded_income": "✅ Записал доход: {amount} {currency} на счёт {account}",
        "recorded_transfer": "✅ Записал перевод: {amount} {currency} с {account} на {second_account}",
        "recorded_credit": "✅ Записал кредитную операцию: {amount} {currency}",
        "recorded_generic": "✅ Операция записана",
        "recorded_many": "✅ Записал {count} операции:",
        "short_income": "доход",
        "short_transfer": "перевод",
        "short_credit": "кредит",
        "short_generic": "операция",
        "corrected": "✏️ Исправил: ",
        "settings_name": "Имя",
        "settings_currency": "Валюта по умолчанию",
        "settings_account": "Счёт по умолчанию",
        "settings_fund": "Фонд по умолчанию",
        "settings_accounts": "Счета",
        "settings_funds": "Фонды",
        "settings_linked": "Связанные пользователи",
        "settings_instructions": "Инструкции",
        "settings_empty": "Настроек пока нет.",
    },
}


def resolve_language(language: str | None) -> str:
    if not language:
        return DEFAULT_LANGUAGE
    code = language.strip().lower().replace("_", "-").split("-")[0]
    return code if code in CATALOG else DEFAULT_LANGUAGE


def language_of(profile: UserProfile | None) -> str:
    return resolve_language(profile.preferred_language if profile else None)


def get_message(key: str, language: str | None = None, **params: object) -> str:
    lang = resolve_language(language)
    template = CATALOG[lang].get(key)
    if template is None:
        template = CATALOG[DEFAULT_LANGUAGE][key]
    return template.format(**params) if params else template
