"""Fixed user-facing texts."""

COMMAND_PREFIX = "/"

START_MESSAGE = (
    "*Welcome to the Detective Conan Wiki Bot!* 🕵️‍♂️\n"
    "I'm here to provide accurate, deep information about the world of Detective Conan "
    "and Case Closed, based on the Gemini API.\n\n"
    "Ask me anything about characters, plots, episodes, or the Black Organization!\n"
    "Example: _Who is the boss of the Black Organization?_\n\n"
    "{user_id_line}"
)

HELP_MESSAGE = (
    "*Help & Usage* 💡\n"
    "Simply send me your question. I can answer complex lore and plot questions.\n"
    "Available Commands:\n"
    "• `/start` - Show the welcome message.\n"
    "• `/help` - Show this help message."
)

ERROR_MESSAGE = (
    "🚨 *Error!* 🚨\n"
    "I apologize, but I encountered a critical error while processing your request. "
    "The Black Organization seems to have interfered! Please try again later. "
    "The developer has been notified."
)

NOT_CONFIGURED_MESSAGE = "❌ AI service is not properly configured. Cannot process request."

NO_RESPONSE_MESSAGE = (
    "😔 The AI could not generate a valid response for your query (Safety check failed)."
)


def start_message(user_id: int | None) -> str:
    user_id_line = f"User ID: `{user_id}`" if user_id else "User ID: N/A"
    return START_MESSAGE.format(user_id_line=user_id_line)
