from typing import Any, Dict, List, Optional

from numberdesk.gateway import Gateway


class AdminAPI:
    """Endpoint bindings for the operator surface. All calls go through the gateway."""

    def __init__(self, gateway: Gateway):
        self.gateway = gateway

    # -- operator session --------------------------------------------------

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        return await self.gateway.post("/api/admin/login", json={"username": username, "password": password})

    async def get_dashboard(self) -> Dict[str, Any]:
        return await self.gateway.get("/api/admin/dashboard")

    # -- ranges ------------------------------------------------------------

    async def get_ranges(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"category": category} if category else None
        return await self.gateway.get("/api/admin/ranges", params=params)

    async def create_range(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.gateway.post("/api/admin/ranges", json=data)

    async def update_range(self, range_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.gateway.put(f"/api/admin/ranges/{range_id}", json=data)

    async def delete_range(self, range_id: int) -> Any:
        return await self.gateway.delete(f"/api/admin/ranges/{range_id}")

    # -- dashboard data ----------------------------------------------------

    async def get_balance(self) -> Dict[str, Any]:
        return await self.gateway.get("/api/admin/balance")

    async def get_test_numbers(self) -> Dict[str, Any]:
        return await self.gateway.get("/api/admin/test-numbers")

    # -- category timers ---------------------------------------------------

    async def start_timer(self, category: str, interval_minutes: int) -> Any:
        return await self.gateway.post(
            "/api/admin/timer/start",
            params={"category": category, "interval_minutes": interval_minutes},
        )

    async def stop_timer(self, category: str) -> Any:
        return await self.gateway.post("/api/admin/timer/stop", params={"category": category})

    # -- upstream credential profiles --------------------------------------

    async def get_profiles(self) -> List[Dict[str, Any]]:
        return await self.gateway.get("/api/admin/profiles")

    async def create_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.gateway.post("/api/admin/profiles", json=data)

    async def update_profile(self, profile_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.gateway.put(f"/api/admin/profiles/{profile_id}", json=data)

    async def delete_profile(self, profile_id: int) -> Any:
        return await self.gateway.delete(f"/api/admin/profiles/{profile_id}")

    async def activate_profile(self, profile_id: int) -> Any:
        return await self.gateway.post(f"/api/admin/profiles/{profile_id}/activate")

    async def login_profile(self, profile_id: int) -> Dict[str, Any]:
        return await self.gateway.post(f"/api/admin/profiles/{profile_id}/login")

    async def get_active_profile(self) -> Optional[Dict[str, Any]]:
        return await self.gateway.get("/api/admin/profiles/active")
