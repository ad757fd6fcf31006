"""
Gradio-based demo UI for the Biometric Access demo.

This is the main entry point for the frontend application.
Run with: python -m frontend.app_gradio

Flow:
1. Register or log in on the Account tab.
2. If not enrolled, start enrollment, look at the camera for a few seconds,
   then complete enrollment.
3. Verify on the Verification tab: the camera must stay live and uncovered
   for about ten seconds before the claim is sent.
"""

import logging
from typing import Tuple

import gradio as gr

from frontend.api_client import APIError, get_api_client
from frontend.auth_flow import BiometricFlow
from frontend.biometric_widget import BiometricWidget

logger = logging.getLogger(__name__)


# ============================================================
# Global State
# ============================================================
api_client = get_api_client()
widget = BiometricWidget()
flow = BiometricFlow(api_client, widget)


def _user_summary() -> str:
    user = api_client.current_user()
    if not user:
        return "Not logged in."
    status = "✅ Enrolled" if user.get("enrolled") else "⚠️ Not enrolled"
    return f"**{user.get('email')}** ({status})"


# ============================================================
# Account Tab Functions
# ============================================================

def register(email: str, password: str) -> Tuple[str, str]:
    try:
        api_client.register(email, password)
    except APIError as e:
        return f"❌ {e.message}", _user_summary()
    return "✅ Registered. Complete biometric enrollment next.", _user_summary()


def login(email: str, password: str) -> Tuple[str, str]:
    try:
        data = api_client.login(email, password)
    except APIError as e:
        return f"❌ {e.message}", _user_summary()

    if data["user"]["enrolled"]:
        return "✅ Logged in. Complete biometric verification to continue.", _user_summary()
    return "✅ Logged in. You need to enroll before verifying.", _user_summary()


def logout() -> Tuple[str, str]:
    flow.cancel()
    api_client.logout()
    return "Logged out.", _user_summary()


# ============================================================
# Enrollment Tab Functions
# ============================================================

def start_enrollment() -> str:
    user = api_client.current_user()
    if not user:
        return "⚠️ Please log in first"

    result = flow.begin_enrollment(user["id"])
    if not result.success:
        return f"❌ {result.message}"

    return """## 📷 Enrollment Started

**Instructions:**
1. Look at the camera
2. Keep your face visible and well lit
3. Wait a few seconds, then click **Complete Enrollment**
"""


def complete_enrollment() -> Tuple[str, str]:
    result = flow.complete_enrollment()
    prefix = "✅" if result.success else "❌"
    return f"{prefix} {result.message}", _user_summary()


def cancel_enrollment() -> str:
    flow.cancel()
    return "Enrollment cancelled."


# ============================================================
# Verification Tab Functions
# ============================================================

async def verify() -> Tuple[str, str]:
    user = api_client.current_user()
    if not user:
        return "⚠️ Please log in first", _user_summary()
    if not user.get("enrolled"):
        return "⚠️ Please complete enrollment first", _user_summary()

    result = await flow.verify(user["id"])
    if result.success:
        return f"✅ {result.message}. Access granted.", _user_summary()
    return f"❌ {result.message}", _user_summary()


def cancel_verification() -> str:
    flow.cancel()
    return "Verification cancelled."


def refresh_profile() -> str:
    if not api_client.is_authenticated():
        return _user_summary()
    try:
        api_client.get_profile()
    except APIError as e:
        return f"❌ {e.message}"
    return _user_summary()


def get_connection_status() -> str:
    if api_client.check_backend_available():
        return f"🟢 Backend connected ({api_client.base_url})"
    return f"🔴 Backend unreachable ({api_client.base_url})"


def create_demo() -> gr.Blocks:
    """Build the Gradio interface."""
    with gr.Blocks(title="Biometric Access Demo") as demo:
        gr.Markdown("# 🔐 Biometric Access Demo")
        connection = gr.Markdown(get_connection_status())
        user_box = gr.Markdown(_user_summary())

        with gr.Tabs():
            with gr.TabItem("👤 Account"):
                email = gr.Textbox(label="Email")
                password = gr.Textbox(label="Password", type="password")
                with gr.Row():
                    register_btn = gr.Button("📝 Register", variant="primary")
                    login_btn = gr.Button("🔓 Log In", variant="secondary")
                    logout_btn = gr.Button("🚪 Log Out")
                account_status = gr.Markdown()

                register_btn.click(register, inputs=[email, password], outputs=[account_status, user_box])
                login_btn.click(login, inputs=[email, password], outputs=[account_status, user_box])
                logout_btn.click(logout, outputs=[account_status, user_box])

            with gr.TabItem("📝 Enrollment"):
                with gr.Row():
                    start_btn = gr.Button("▶️ Start Enrollment", variant="primary")
                    complete_btn = gr.Button("✅ Complete Enrollment", variant="secondary")
                    cancel_enroll_btn = gr.Button("✖️ Cancel")
                enroll_status = gr.Markdown()

                start_btn.click(start_enrollment, outputs=[enroll_status])
                complete_btn.click(complete_enrollment, outputs=[enroll_status, user_box])
                cancel_enroll_btn.click(cancel_enrollment, outputs=[enroll_status])

            with gr.TabItem("🛡️ Verification"):
                gr.Markdown("Keep your camera uncovered and your face visible for about 10 seconds.")
                with gr.Row():
                    verify_btn = gr.Button("🔐 Verify", variant="primary")
                    cancel_verify_btn = gr.Button("✖️ Cancel")
                verify_status = gr.Markdown()

                verify_btn.click(verify, outputs=[verify_status, user_box])
                cancel_verify_btn.click(cancel_verification, outputs=[verify_status])

            with gr.TabItem("📋 Profile"):
                refresh_btn = gr.Button("🔄 Refresh Profile")
                profile_status = gr.Markdown()
                refresh_btn.click(refresh_profile, outputs=[profile_status])

        gr.Markdown("""
        ---
        **Tip**: Start the backend with `uvicorn api.app:app --port 3001 --reload`.
        """)

        demo.load(get_connection_status, outputs=[connection])

    return demo


# ============================================================
# Entry Point
# ============================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    demo = create_demo()
    demo.launch(
        server_name="0.0.0.0",
        server_port=7860,
        show_error=True,
    )
