import base64
import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AuthProvider:
    """Supplies HTTP basic credentials to git network commands.

    Credentials are handed to git as an `http.extraHeader` through the
    `GIT_CONFIG_COUNT` / `GIT_CONFIG_KEY_n` / `GIT_CONFIG_VALUE_n` environment
    protocol, so they never show up in argv, in the clone's `.git/config`, or in
    the remote URL.

    Attributes:
        username (str): The basic-auth user name.
        token (str): The password or personal access token.
    """

    username: str = ""
    token: str = field(default="", repr=False)

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def header(self) -> str:
        """Builds the `Authorization` header value for the credentials."""
        raw = f"{self.username}:{self.token}".encode()
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def git_env(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Returns a process environment that authenticates git remote operations.

        Args:
            base (dict[str, str] | None, optional): The environment to extend.
                                                    Defaults to `os.environ`.

        Returns:
            dict[str, str]: A copy of `base` with prompting disabled and, when a
                            token is configured, the auth header injected.
        """
        env = dict(os.environ if base is None else base)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if not self.enabled:
            return env

        index = int(env.get("GIT_CONFIG_COUNT", "0") or 0)
        env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
        env[f"GIT_CONFIG_VALUE_{index}"] = f"Authorization: {self.header()}"
        env["GIT_CONFIG_COUNT"] = str(index + 1)
        return env

    def redact(self, text: str) -> str:
        """Masks the token and the derived header in arbitrary text."""
        if not self.enabled:
            return text
        for secret in (self.header(), self.token):
            text = text.replace(secret, "***")
        return text
