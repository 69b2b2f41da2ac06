#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PyQt5 msghub 채팅 클라이언트
------------------------------------------------
기능 요약
- 허브(TCP)와 JSON-lines(한 줄에 한 메시지)로 통신
- 이름 입력 → 식별자 파일 로드/생성 → (새 식별자면) set_name → list
- 방 목록 새로고침 / 생성 / 삭제 / 입장 / 퇴장
- 입장한 방으로 메시지 전송, 허브 이벤트를 로그 창에 표시
"""

import sys
from pathlib import Path
from typing import Optional

from PyQt5 import QtCore, QtWidgets

from ..protocol import LIST, Message
from .commands import format_event
from .connection import ChatClient
from .identity import identity_path, load_or_create_identity


# =====================
# 네트워크 워커
# =====================
class NetWorker(QtCore.QObject):
    connected = QtCore.pyqtSignal()
    disconnected = QtCore.pyqtSignal()
    error = QtCore.pyqtSignal(str)
    eventReceived = QtCore.pyqtSignal(object)
    status = QtCore.pyqtSignal(str)

    def __init__(self, data_dir: Path):
        super().__init__()
        self.data_dir = data_dir
        self.client: Optional[ChatClient] = None

    def connect_to(self, host: str, port: int, name: str) -> bool:
        if self.client and self.client.connection.connected:
            self.error.emit("Already connected")
            return True
        try:
            client_id, created = load_or_create_identity(identity_path(self.data_dir, name))
        except OSError as e:
            self.error.emit(f"Could not locate or generate client ID: {e}")
            return False
        self.status.emit(f"Connecting {host}:{port} ...")
        self.client = ChatClient(
            name,
            client_id,
            on_event=self.eventReceived.emit,
            on_close=self.disconnected.emit,
        )
        try:
            self.client.connect(host, port, announce=created)
            self.client.list_rooms()
        except OSError as e:
            self.client = None
            self.error.emit(f"Connect failed: {e}")
            return False
        self.connected.emit()
        self.status.emit("Connected")
        return True

    def request(self, kind: str, room: str = "", text: str = ""):
        if not self.client:
            self.error.emit("Not connected")
            return
        try:
            self.client.request(kind, room=room, text=text)
        except ConnectionError as e:
            self.error.emit(f"Send failed: {e}")

    def close(self):
        if self.client:
            self.client.close()
        self.client = None


# =====================
# 메인 윈도우
# =====================
class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, data_dir: Path):
        super().__init__()
        self.setWindowTitle("msghub - PyQt Client")
        self.resize(900, 600)

        self.worker = NetWorker(data_dir)
        self.name: str = "user"

        self._build_ui()

        self.worker.connected.connect(self.on_connected)
        self.worker.disconnected.connect(self.on_disconnected)
        self.worker.error.connect(self.on_error)
        self.worker.eventReceived.connect(self.on_event)
        self.worker.status.connect(self.set_status)

    # ---------- UI ----------
    def _build_ui(self):
        central = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(central)

        top = QtWidgets.QHBoxLayout()
        self.ed_host = QtWidgets.QLineEdit("127.0.0.1")
        self.ed_port = QtWidgets.QLineEdit("8000")
        self.ed_name = QtWidgets.QLineEdit("alice")
        self.btn_connect = QtWidgets.QPushButton("Connect")
        for w, ph in [(self.ed_host, "host"), (self.ed_port, "port"), (self.ed_name, "name")]:
            w.setPlaceholderText(ph)
        top.addWidget(QtWidgets.QLabel("Host:"))
        top.addWidget(self.ed_host)
        top.addWidget(QtWidgets.QLabel("Port:"))
        top.addWidget(self.ed_port)
        top.addWidget(QtWidgets.QLabel("Name:"))
        top.addWidget(self.ed_name)
        top.addWidget(self.btn_connect)

        body = QtWidgets.QHBoxLayout()
        side = QtWidgets.QVBoxLayout()
        self.room_list = QtWidgets.QListWidget()
        self.ed_room = QtWidgets.QLineEdit()
        self.ed_room.setPlaceholderText("room")
        side.addWidget(self.room_list)
        side.addWidget(self.ed_room)
        buttons = QtWidgets.QGridLayout()
        self.btn_refresh = QtWidgets.QPushButton("Refresh")
        self.btn_create = QtWidgets.QPushButton("Create")
        self.btn_destroy = QtWidgets.QPushButton("Destroy")
        self.btn_join = QtWidgets.QPushButton("Join")
        self.btn_leave = QtWidgets.QPushButton("Leave")
        buttons.addWidget(self.btn_refresh, 0, 0)
        buttons.addWidget(self.btn_create, 0, 1)
        buttons.addWidget(self.btn_destroy, 1, 0)
        buttons.addWidget(self.btn_join, 1, 1)
        buttons.addWidget(self.btn_leave, 2, 0, 1, 2)
        side.addLayout(buttons)

        chat = QtWidgets.QVBoxLayout()
        self.log = QtWidgets.QPlainTextEdit()
        self.log.setReadOnly(True)
        bottom = QtWidgets.QHBoxLayout()
        self.ed_msg = QtWidgets.QLineEdit()
        self.ed_msg.setPlaceholderText("type your message here...")
        self.btn_send = QtWidgets.QPushButton("Send")
        bottom.addWidget(self.ed_msg)
        bottom.addWidget(self.btn_send)
        chat.addWidget(self.log)
        chat.addLayout(bottom)

        body.addLayout(side, 1)
        body.addLayout(chat, 3)
        layout.addLayout(top)
        layout.addLayout(body)
        self.setCentralWidget(central)

        self.status = QtWidgets.QStatusBar()
        self.setStatusBar(self.status)

        self.btn_connect.clicked.connect(self.ui_connect)
        self.btn_refresh.clicked.connect(lambda: self.worker.request(LIST))
        self.btn_create.clicked.connect(lambda: self.room_request("create"))
        self.btn_destroy.clicked.connect(lambda: self.room_request("destroy"))
        self.btn_join.clicked.connect(lambda: self.room_request("join"))
        self.btn_leave.clicked.connect(lambda: self.room_request("leave"))
        self.btn_send.clicked.connect(self.ui_send)
        self.ed_msg.returnPressed.connect(self.ui_send)
        self.room_list.currentTextChanged.connect(self.ed_room.setText)

    def set_status(self, s: str):
        self.status.showMessage(s, 5000)

    # ---------- 요청 ----------
    @QtCore.pyqtSlot()
    def ui_connect(self):
        host = self.ed_host.text().strip()
        port = int(self.ed_port.text().strip() or 8000)
        self.name = self.ed_name.text().strip() or "user"
        self.worker.connect_to(host, port, self.name)

    def current_room(self) -> str:
        return self.ed_room.text().strip()

    def room_request(self, kind: str):
        room = self.current_room()
        if not room:
            self.set_status("Enter a room name first")
            return
        self.worker.request(kind, room=room)

    @QtCore.pyqtSlot()
    def ui_send(self):
        room = self.current_room()
        text = self.ed_msg.text()
        if not room or not text:
            return
        self.worker.request("new_msg", room=room, text=text)
        self.ed_msg.clear()

    # ---------- 이벤트 수신 ----------
    @QtCore.pyqtSlot()
    def on_connected(self):
        self.set_status(f"Connected as {self.name}")

    @QtCore.pyqtSlot()
    def on_disconnected(self):
        self.set_status("Disconnected")
        self.log.appendPlainText("> Server closed connection.")

    @QtCore.pyqtSlot(str)
    def on_error(self, err: str):
        self.set_status(f"Error: {err}")

    @QtCore.pyqtSlot(object)
    def on_event(self, message: Message):
        if message.type == LIST and not message.error:
            self.room_list.clear()
            rooms = [r for r in message.text.split(", ") if r]
            self.room_list.addItems(rooms)
        self.log.appendPlainText(format_event(message, self.name))

    def closeEvent(self, event):
        self.worker.close()
        super().closeEvent(event)


# =====================
# 진입점
# =====================
def main():
    app = QtWidgets.QApplication(sys.argv)
    w = MainWindow(Path.cwd() / "data")
    w.show()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
