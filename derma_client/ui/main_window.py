from __future__ import annotations

import logging
from tkinter import filedialog, messagebox

import customtkinter as ctk
from PIL import Image, UnidentifiedImageError

from derma_client.apis import LoginApi, UploadApi
from derma_client.auth import SessionManager
from derma_client.config import AppSettings, ConfigurationError
from derma_client.http import HttpClient
from derma_client.logging_utils import configure_logging
from derma_client.models import AppState, SessionPhase
from derma_client.services import DermaService, UploadBlockedError
from derma_client.session_store import build_session_store

logger = logging.getLogger(__name__)

ERROR_COLOR = "#d14343"
SUCCESS_COLOR = "#2e8b57"
PREVIEW_SIZE = (200, 200)
IMAGE_FILETYPES = [
	("Images", "*.jpg *.jpeg *.png *.bmp *.gif *.tif *.tiff *.webp"),
	("All files", "*.*"),
]


class MainWindow(ctk.CTk):
	def __init__(self, service: DermaService):
		super().__init__()
		self._service = service
		self.title("Derma")
		self.geometry("480x640")
		self.minsize(420, 560)

		self._preview_path: str | None = None
		self._preview_image: ctk.CTkImage | None = None

		self._login_frame = self._build_login_frame()
		self._home_frame = self._build_home_frame()

		self._service.set_dispatcher(lambda task: self.after(0, task))
		self._unsubscribe = self._service.subscribe(self._render)
		self.protocol("WM_DELETE_WINDOW", self._on_close)

		self._render(self._service.state)

	def _build_login_frame(self) -> ctk.CTkFrame:
		frame = ctk.CTkFrame(self, fg_color="transparent")

		ctk.CTkLabel(
			frame,
			text="Welcome Back!",
			font=ctk.CTkFont(size=28, weight="bold"),
		).pack(pady=(80, 20))

		self._username_entry = ctk.CTkEntry(frame, placeholder_text="Username")
		self._username_entry.pack(fill="x", padx=40, pady=6)

		self._password_entry = ctk.CTkEntry(frame, placeholder_text="Password", show="*")
		self._password_entry.pack(fill="x", padx=40, pady=6)
		self._password_entry.bind("<Return>", lambda _event: self._login())

		self._login_error_label = ctk.CTkLabel(frame, text="", text_color=ERROR_COLOR, wraplength=360)
		self._login_error_label.pack(padx=40, pady=(10, 0))

		self._login_btn = ctk.CTkButton(frame, text="Login", command=self._login)
		self._login_btn.pack(fill="x", padx=40, pady=20)

		return frame

	def _build_home_frame(self) -> ctk.CTkFrame:
		frame = ctk.CTkFrame(self, fg_color="transparent")

		self._welcome_label = ctk.CTkLabel(
			frame,
			text="",
			font=ctk.CTkFont(size=26, weight="bold"),
		)
		self._welcome_label.pack(pady=(40, 20))

		ctk.CTkButton(frame, text="Select a Photo", command=self._select_photo).pack(
			fill="x", padx=40, pady=8
		)

		self._preview_label = ctk.CTkLabel(frame, text="", width=PREVIEW_SIZE[0], height=PREVIEW_SIZE[1])
		self._preview_label.pack(pady=12)

		self._upload_btn = ctk.CTkButton(
			frame,
			text="Upload Image",
			command=self._upload,
			state="disabled",
			fg_color=SUCCESS_COLOR,
		)
		self._upload_btn.pack(pady=8)

		self._upload_status_label = ctk.CTkLabel(frame, text="", wraplength=360)
		self._upload_status_label.pack(padx=40, pady=(4, 8))

		ctk.CTkButton(
			frame,
			text="Logout",
			command=self._confirm_logout,
			fg_color=ERROR_COLOR,
			width=90,
		).pack(side="bottom", anchor="e", padx=16, pady=16)

		return frame

	def _render(self, state: AppState):
		if state.phase is SessionPhase.LOGGED_IN:
			self._login_frame.pack_forget()
			self._home_frame.pack(fill="both", expand=True)
			self._render_home(state)
			return

		self._home_frame.pack_forget()
		self._login_frame.pack(fill="both", expand=True)
		self._render_login(state)

	def _render_login(self, state: AppState):
		self._login_error_label.configure(text=state.login_error or "")
		if state.phase is SessionPhase.LOGGING_IN:
			self._login_btn.configure(state="disabled", text="Logging in...")
		else:
			self._login_btn.configure(state="normal", text="Login")

	def _render_home(self, state: AppState):
		self._welcome_label.configure(text=f"Welcome, {state.session.username}!")
		self._render_preview(state.selected_image)
		self._upload_btn.configure(state="normal" if state.can_upload else "disabled")

		if state.uploading:
			self._upload_status_label.configure(text="Uploading...", text_color=("gray10", "gray90"))
		elif state.upload_error:
			self._upload_status_label.configure(text=state.upload_error, text_color=ERROR_COLOR)
		elif state.last_ack is not None:
			self._upload_status_label.configure(
				text=f"Upload complete (HTTP {state.last_ack.status_code})",
				text_color=SUCCESS_COLOR,
			)
		else:
			self._upload_status_label.configure(text="")

	def _render_preview(self, path: str | None):
		if path == self._preview_path:
			return
		self._preview_path = path

		if path is None:
			self._preview_image = None
			self._preview_label.configure(image=None, text="")
			return

		try:
			with Image.open(path) as img:
				img.thumbnail(PREVIEW_SIZE)
				preview = img.copy()
		except (UnidentifiedImageError, OSError) as exc:
			logger.warning("Cannot preview %s: %s", path, exc)
			self._preview_image = None
			self._preview_label.configure(image=None, text="Preview unavailable")
			return

		self._preview_image = ctk.CTkImage(light_image=preview, dark_image=preview, size=preview.size)
		self._preview_label.configure(image=self._preview_image, text="")

	def _login(self):
		username = self._username_entry.get()
		password = self._password_entry.get()
		self._service.start_login(username, password)

	def _select_photo(self):
		path = filedialog.askopenfilename(title="Select a Photo", filetypes=IMAGE_FILETYPES)
		if not path:
			return
		try:
			self._service.select_image(path)
		except UploadBlockedError as exc:
			self._upload_status_label.configure(text=str(exc), text_color=ERROR_COLOR)

	def _upload(self):
		try:
			self._service.start_upload()
		except UploadBlockedError as exc:
			self._upload_status_label.configure(text=str(exc), text_color=ERROR_COLOR)

	def _confirm_logout(self):
		if not messagebox.askyesno("Logout", "Are you sure you want to log out?", parent=self):
			return
		self._service.logout()
		self._password_entry.delete(0, "end")

	def _on_close(self):
		self._unsubscribe()
		self.destroy()


def build_service(settings: AppSettings) -> DermaService:
	http_client = HttpClient(settings)
	session_manager = SessionManager(
		login_api=LoginApi(settings, http_client),
		store=build_session_store(settings),
	)
	return DermaService(
		session_manager=session_manager,
		upload_api=UploadApi(settings, http_client),
		jpeg_quality=settings.jpeg_quality,
	)


def run_app() -> None:
	ctk.set_appearance_mode("System")
	ctk.set_default_color_theme("blue")

	try:
		settings = AppSettings.from_env()
	except ConfigurationError as exc:
		configure_logging()
		logger.error("Configuration error: %s", exc)
		app = ctk.CTk()
		app.title("Derma - Configuration Error")
		app.geometry("640x300")
		message = ctk.CTkTextbox(app)
		message.pack(fill="both", expand=True, padx=16, pady=16)
		message.insert(
			"1.0",
			"Configuration error. Fix the environment variables and restart:\n\n"
			f"{exc}\n\n"
			"Settings:\n"
			"- DERMA_BASE_URL (default http://localhost:8089)\n"
			"- DERMA_LOGIN_PATH / DERMA_UPLOAD_PATH\n"
			"- DERMA_TIMEOUT_SECONDS, DERMA_JPEG_QUALITY\n"
			"- DERMA_TOKEN_STORE (memory or file), DERMA_TOKEN_CACHE_PATH\n",
		)
		app.mainloop()
		return

	configure_logging(settings.log_level)
	logger.info("Using server %s", settings.base_url)
	window = MainWindow(build_service(settings))
	window.mainloop()
