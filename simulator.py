"""Interactive CLI simulator — walk the OTP auth flow without a UI."""

from otp_auth.main import build_controller, configure_logging
from otp_auth.models.auth_state import (
    Authenticated,
    AuthState,
    Idle,
    Loading,
    OtpError,
    OtpSent,
)
from otp_auth.projections import format_clock, is_urgent

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


def describe(state: AuthState) -> str:
    if isinstance(state, Idle):
        return "Enter your email address to receive a code."
    if isinstance(state, Loading):
        return "Working…"
    if isinstance(state, OtpSent):
        return f"Code sent to {state.identifier}. Enter the 6-digit OTP."
    if isinstance(state, OtpError):
        return f"{RED}{state.message}{RESET}"
    if isinstance(state, Authenticated):
        return f"{GREEN}Session active for {state.identifier}.{RESET} Type 'logout' to end it."
    raise TypeError(f"Unknown state: {state!r}")


def main() -> None:
    configure_logging()

    print(f"\n{BOLD}{'=' * 52}")
    print("  🔐  OTP Auth — Session Simulator")
    print(f"{'=' * 52}{RESET}\n")
    print(f"{DIM}Commands: 'resend', 'time', 'logout', 'reset', 'quit'{RESET}")
    print(f"{DIM}OTP codes are printed in the log output{RESET}\n")

    def show(state: AuthState) -> None:
        if not isinstance(state, Loading):
            print(f"{BOLD}Auth:{RESET} {describe(state)}\n")

    controller = build_controller()
    controller.subscribe(show)
    email = ""

    while True:
        try:
            user_input = input(f"{BLUE}{BOLD}You:{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break

        if command == "logout":
            controller.logout()
            email = ""
            continue

        if command == "reset":
            controller.reset_to_idle()
            email = ""
            continue

        if command == "resend":
            if email:
                controller.send_otp(email)
            else:
                print(f"{YELLOW}No email entered yet.{RESET}\n")
            continue

        if command == "time":
            elapsed = controller.session_elapsed_ms()
            if elapsed is not None:
                print(f"{DIM}Session duration: {format_clock(elapsed)}{RESET}\n")
                continue
            remaining = controller.remaining_time_ms(email) if email else None
            if remaining is None:
                print(f"{DIM}No code outstanding.{RESET}\n")
            else:
                colour = RED if is_urgent(remaining) else DIM
                print(
                    f"{colour}Time remaining: {remaining // 1000}s, "
                    f"attempts left: {controller.remaining_attempts(email)}{RESET}\n"
                )
            continue

        state = controller.current_state
        if email and isinstance(state, (OtpSent, OtpError)) and "@" not in user_input:
            controller.validate_otp(email, user_input)
        elif isinstance(state, Authenticated):
            print(f"{YELLOW}Already signed in. Type 'logout' first.{RESET}\n")
        else:
            email = user_input
            controller.send_otp(email)


if __name__ == "__main__":
    main()
