from .base import Control, Screen, ScreenState
from .home import HomeScreen
from .auth import LoginScreen, RegisterScreen
from .patients import PatientsScreen
from .appointments import AppointmentsScreen
from .beds import BedsScreen
from .prescriptions import PrescriptionsScreen
from .attendance import AttendanceScreen
from .alerts import AlertsScreen

SCREENS = {
    HomeScreen.key: HomeScreen,
    PatientsScreen.key: PatientsScreen,
    AppointmentsScreen.key: AppointmentsScreen,
    BedsScreen.key: BedsScreen,
    PrescriptionsScreen.key: PrescriptionsScreen,
    AttendanceScreen.key: AttendanceScreen,
    AlertsScreen.key: AlertsScreen,
}
