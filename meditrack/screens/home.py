from __future__ import annotations

from typing import Any, Dict, List

from meditrack.schemas import ScreenKey
from meditrack.services.permission_service import PermissionService, SCREEN_DESCRIPTIONS, SCREEN_LABELS

from .base import Screen


class HomeScreen(Screen):
    """Welcome page: one card per screen the role can open."""

    key = ScreenKey.HOME

    def cards(self) -> List[Dict[str, str]]:
        return [
            {
                "key": screen.value,
                "label": SCREEN_LABELS[screen],
                "description": SCREEN_DESCRIPTIONS.get(screen, ""),
            }
            for screen in PermissionService.menu_for(self.role)
            if screen != ScreenKey.HOME
        ]

    def view(self) -> Dict[str, Any]:
        identity = self.session.identity
        data = super().view()
        data.update({
            "welcome": f"Welcome, {identity.name}!" if identity else "Welcome!",
            "role": self.role.value if self.role else None,
            "cards": self.cards(),
        })
        return data
