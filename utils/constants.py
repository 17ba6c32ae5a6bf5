"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages (Telegram HTML)
- Button labels and callback identifiers
- Quick picks (regions, crime types)

(Prevents hardcoding across the codebase)
"""

# ============================================================
# CALLBACK IDENTIFIERS
# ============================================================

CB_GO_JOIN = "go_join"
CB_GO_REPORT = "go_report"
CB_CHECK_STATUS = "check_status"
CB_GO_ADMIN = "go_admin"
CB_CANCEL = "cancel_scene"
CB_SHOW_HELP = "show_help"
CB_MAIN_MENU = "main_menu"
CB_CONFIRM_JOIN = "confirm_join"
CB_CONFIRM_REPORT = "confirm_report"

# Parameterized identifiers, followed by a numeric id or a region code
CB_APPROVE_PREFIX = "adm_ok_"
CB_DECLINE_PREFIX = "adm_no_"
CB_TAKE_CASE_PREFIX = "w_take_"
CB_SKIP_CASE_PREFIX = "w_skip_"
CB_PICK_PREFIX = "pick_"

# Telegram limits callback_data to 64 bytes and messages to 4096 characters
MAX_CALLBACK_DATA_BYTES = 64
MAX_MESSAGE_LENGTH = 4096

# ============================================================
# QUICK PICKS
# ============================================================

REGION_CHOICES = {
    "RU": "Russia",
    "UA": "Ukraine",
    "KZ": "Kazakhstan",
}

CRIME_TYPE_CHOICES = {
    "EXT": "Extortion",
    "SCAM": "Fraud",
    "OTHER": "Other",
}

# ============================================================
# MAIN MENU
# ============================================================

WELCOME_MESSAGE = """<b>Bakelite Federation</b>
Version: {version}

We connect people who need help against cybercrime with volunteer defenders.

Choose an action:"""

MAIN_MENU_MESSAGE = "Main menu:"

HELP_MESSAGE = """<b>How this bot works</b>

🛡️ <b>Become a defender</b> - apply to join the volunteer team. The administrator reviews every application.
🆘 <b>Request help</b> - send a signal that reaches the administrator and every approved defender.
📊 <b>My application</b> - check the review status of your application.

/start - main menu
/menu - back to the buttons
/cancel - abort the current form"""

UNKNOWN_INPUT_MESSAGE = "I did not understand that. Please use the menu below."

BUTTON_JOIN = "🛡️ Become a defender"
BUTTON_REPORT = "🆘 Request help"
BUTTON_STATUS = "📊 My application"
BUTTON_HELP = "ℹ️ Help"
BUTTON_ADMIN = "👨‍⚖️ Admin panel"
BUTTON_BACK_TO_MENU = "🔙 Menu"

# ============================================================
# DIALOG COMMON
# ============================================================

BUTTON_CANCEL = "❌ Cancel"
BUTTON_SUBMIT = "✅ Submit"
BUTTON_SEND_SIGNAL = "🚀 Send"

STEP_PROGRESS = "<b>Step {current} of {total}</b>"

TEXT_REQUIRED_MESSAGE = "Please reply with text."
TEXT_TOO_LONG_MESSAGE = "That answer is too long. Please keep it under {limit} characters."

REVIEW_CHOOSE_MESSAGE = "Please press one of the two buttons below."

CANCELLED_MESSAGE = "Action cancelled."
FORM_INACTIVE_MESSAGE = "This form is no longer active."
SESSION_EXPIRED_MESSAGE = "⌛ Your form was idle for too long and has been discarded. Please start again."

SUBMISSION_FAILED_MESSAGE = """⚠️ <b>We could not save your submission.</b>

Nothing was sent. Please press the button again in a moment, or cancel."""

GENERIC_ERROR_MESSAGE = "❌ Something went wrong. Please type /start to begin again."

STORE_UNAVAILABLE_MESSAGE = "⚠️ Our records are temporarily unavailable. Please try again later."

# ============================================================
# JOIN DIALOG
# ============================================================

JOIN_REGION_PROMPT = "🛡️ Which region do you operate in? Pick one below or type it."
JOIN_NICK_PROMPT = "Enter your nickname:"
JOIN_SKILLS_PROMPT = "What are your skills? (e.g. OSINT, forensics, legal)"
JOIN_DETAILS_PROMPT = "Tell us about your experience:"

JOIN_REVIEW_MESSAGE = """<b>PLEASE CHECK YOUR APPLICATION</b>

Region: {region}
Nickname: {nick}
Skills: {skills}
Experience: {details}"""

JOIN_SUBMITTED_MESSAGE = "✅ Your application was sent to {admin}. Please wait for the decision."

# ============================================================
# REPORT DIALOG
# ============================================================

REPORT_LOCATION_PROMPT = "🆘 Where did it happen? Pick a country below or type it."
REPORT_ISSUE_PROMPT = "What happened? Pick a type below or describe the problem in detail:"
REPORT_CONTACT_PROMPT = "How can a defender reach you? (Telegram handle, e-mail, ...)"

REPORT_REVIEW_MESSAGE = """<b>Is everything correct?</b>

Location: {location}
Problem: {issue}
Contact: {contact}

Send the request to the defenders?"""

REPORT_SENT_MESSAGE = "✅ Request #{signal_id} was created. The defence team has been notified ({count} delivered)."

# ============================================================
# STATUS
# ============================================================

STATUS_NOT_FOUND_MESSAGE = "You have no application on record."

STATUS_MESSAGE = """📊 <b>Your application</b>

Nickname: {nick}
Region: {region}
Submitted: {registered_at}
Status: <b>{label}</b>"""

# ============================================================
# ADMIN
# ============================================================

ADMIN_ONLY_MESSAGE = "Access denied."
ADMIN_EMPTY_MESSAGE = "No applications yet."
ADMIN_LIST_HEADER = "<b>Applications</b> ({total}: {pending} queued, {approved} accepted, {rejected} declined)"
ADMIN_LIST_ENTRY = "• <code>{user_id}</code> {nick} ({region}) - {label}"
ADMIN_LIST_TRUNCATED = "… and {count} more"

NEW_APPLICATION_MESSAGE = """👨‍⚖️ <b>NEW DEFENDER APPLICATION</b>

User: {username}
ID: <code>{user_id}</code>
Region: {region}
Nickname: {nick}
Skills: {skills}
Experience: {details}"""

BUTTON_APPROVE = "✅ Approve"
BUTTON_DECLINE = "❌ Decline"

APPLICANT_NOT_FOUND_MESSAGE = "Applicant not found."
ALREADY_APPROVED_MESSAGE = "Already approved."
ALREADY_DECLINED_MESSAGE = "Already declined."
APPROVED_SUFFIX = "\n\n✅ <b>APPROVED</b> <code>{user_id}</code>"
DECLINED_SUFFIX = "\n\n❌ <b>DECLINED</b> <code>{user_id}</code>"
APPROVED_TOAST = "Application {user_id} approved."
DECLINED_TOAST = "Application {user_id} declined."

APPROVED_NOTICE = """🎉 <b>{admin} approved your application!</b>
From now on you will receive help requests."""

DECLINED_NOTICE = "❌ Your defender application was declined."

# ============================================================
# HELP SIGNALS
# ============================================================

HELP_SIGNAL_MESSAGE = """⚠️ <b>NEW REQUEST #{signal_id}</b>

From: {username} (<code>{user_id}</code>)
Location: {location}
Problem: {issue}
Contact: {contact}"""

BUTTON_TAKE_CASE = "🛡️ Take this case"
BUTTON_SKIP_CASE = "🚫 Decline"

NOT_A_DEFENDER_MESSAGE = "You are not a defender."
CASE_TAKEN_SUFFIX = "\n\n✅ <b>Taken by you</b>"
CASE_TAKEN_TOAST = "You took this case."
CASE_TAKEN_NOTICE = "🛡️ <b>Defender {defender} has taken your request.</b>\nExpect a message from them soon."
CASE_TAKEN_ADMIN_NOTICE = "📣 Defender {defender} took the case of <code>{requester_id}</code>."
CASE_SKIPPED_MESSAGE = "🚫 You declined this request."
