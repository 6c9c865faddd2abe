import argparse
import logging
import os
import sys
import tkinter as tk

from PIL import ImageTk

from .chunker import ChunkEncodingError, chunk_text, describe_text
from .config import (
    DEFAULT_CHARSET,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FRAME_RATE,
    EXPORT_PREFIX,
    MAX_CHUNK_SIZE,
    MAX_FRAME_RATE,
    MIN_CHUNK_SIZE,
    MIN_FRAME_RATE,
    SYMBOL_SIZE,
    WINDOW_GEOMETRY,
    clamp_chunk_size,
    clamp_frame_rate,
)
from .renderer import CodeFamily, render_symbol
from .session import Status, StreamSession

logger = logging.getLogger(__name__)


class QRPresenter:
    """
    A simple Tkinter app that plays a stream session as animated symbols.
    The session's scheduler runs on this window's `after` timer, so every
    frame change arrives here on the Tk event loop.
    """
    def __init__(self, root, session, size=SYMBOL_SIZE):
        self.root = root
        self.session = session
        self.size = size

        # 1. Setup the window
        self.root.title("Streaming QR")
        self.root.bind("<space>", self._on_space)
        self.root.bind("<Escape>", lambda event: self.close())
        self.root.protocol("WM_DELETE_WINDOW", self.close)

        # 2. Label for the chunk counter
        self.info_label = tk.Label(root, text="", font=("Helvetica", 16))
        self.info_label.pack(pady=10)

        # 3. Label to hold the symbol image
        self.qr_label = tk.Label(root, bg="white")
        self.qr_label.pack(padx=20, pady=10, expand=True)

        self.stream_label = tk.Label(root, text="", font=("Helvetica", 10))
        self.stream_label.pack()

        # 4. Source text, editable while streaming
        self.text_box = tk.Text(root, height=6, wrap="word", undo=True)
        self.text_box.insert("1.0", session.text)
        self.text_box.pack(fill="x", padx=10)
        self.text_box.bind("<KeyRelease>", lambda event: self._text_changed())
        self.text_box.bind("<<Paste>>", lambda event: self.root.after_idle(self._text_changed))

        self.text_info_label = tk.Label(root, text="", font=("Helvetica", 10), justify="left")
        self.text_info_label.pack(anchor="w", padx=10)

        # 5. Controls
        controls = tk.Frame(root)
        controls.pack(fill="x", padx=10, pady=10)

        self.toggle_button = tk.Button(controls, width=16, command=self.toggle)
        self.toggle_button.grid(row=0, column=0, columnspan=2, sticky="we", pady=(0, 6))

        self.loop_var = tk.BooleanVar(value=session.scheduler.loop)
        tk.Checkbutton(controls, text="Loop when finished", variable=self.loop_var,
                       command=self._loop_changed).grid(row=0, column=2, columnspan=2, sticky="w")

        tk.Label(controls, text="FPS").grid(row=1, column=0, sticky="e")
        self.fps_var = tk.StringVar(value=str(session.scheduler.frame_rate))
        tk.Spinbox(controls, from_=MIN_FRAME_RATE, to=MAX_FRAME_RATE, width=5,
                   textvariable=self.fps_var, command=self._fps_changed).grid(row=1, column=1, sticky="w")

        tk.Label(controls, text="Chunk size").grid(row=1, column=2, sticky="e")
        self.chunk_var = tk.StringVar(value=str(session.chunk_size))
        tk.Spinbox(controls, from_=MIN_CHUNK_SIZE, to=MAX_CHUNK_SIZE, increment=10, width=5,
                   textvariable=self.chunk_var, command=self._chunk_size_changed).grid(row=1, column=3, sticky="w")

        self.family_var = tk.StringVar(value=session.family.value)
        tk.OptionMenu(controls, self.family_var, *[f.value for f in CodeFamily],
                      command=self._family_changed).grid(row=2, column=0, columnspan=4, sticky="we", pady=(6, 0))

        session.on_frame = lambda _session: self.redraw()
        self._update_text_info()
        self.redraw()

    def _on_space(self, event):
        if event.widget is self.text_box:
            return
        self.toggle()

    def toggle(self):
        enabled = self.session.toggle()
        print("Streaming resumed" if enabled else "Streaming paused")

    def _loop_changed(self):
        self.session.set_loop(self.loop_var.get())

    def _fps_changed(self):
        fps = clamp_frame_rate(self.fps_var.get())
        self.fps_var.set(str(fps))
        self.session.set_frame_rate(fps)

    def _chunk_size_changed(self):
        chunk_size = clamp_chunk_size(self.chunk_var.get())
        self.chunk_var.set(str(chunk_size))
        self.session.set_chunk_size(chunk_size)
        self._update_text_info()

    def _text_changed(self):
        self.session.set_text(self.text_box.get("1.0", "end-1c"))
        self._update_text_info()

    def _update_text_info(self):
        self.text_info_label.config(text=text_info_caption(self.session.text, self.session.chunk_size))

    def _family_changed(self, value):
        self.session.set_family(value)

    def redraw(self):
        """Show whatever frame the scheduler currently points at."""
        scheduler = self.session.scheduler
        self.toggle_button.config(text="Stop streaming" if scheduler.enabled else "Start streaming")

        status, caption = self.session.status()
        if status is not Status.STREAMING:
            self.info_label.config(text=caption, fg="red" if status is not Status.NO_STREAM else "gray")
            self.stream_label.config(text="")
            self.qr_label.config(image="")
            self.qr_label.image = None
            return

        if scheduler.completed:
            caption += "\n(finished)"
        self.info_label.config(text=caption, fg="black")
        self.stream_label.config(text=f"Stream: {self.session.stream_id}")

        img = self.session.render(self.size)
        if img is None:
            # Encoder rejected this frame; keep playing and show nothing for it.
            self.qr_label.config(image="")
            self.qr_label.image = None
            return

        tk_img = ImageTk.PhotoImage(img)
        self.qr_label.config(image=tk_img)
        # Keep a reference to the image to prevent garbage collection
        self.qr_label.image = tk_img

    def close(self):
        self.session.close()
        self.root.destroy()


def text_info_caption(text, chunk_size):
    """Length and expected frame count, as shown under the text box."""
    if not text:
        return ""
    info = describe_text(text, chunk_size)
    return f"Total length: {info.length} characters\nExpected chunks: {info.expected_chunks}"


def read_source_text(path=None, text=None, stream=None):
    """Source text from --text, a file, or stdin (in that order)."""
    if text is not None:
        return text
    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    stream = stream if stream is not None else sys.stdin
    return stream.read()


def print_text_info(text, chunk_size):
    info = describe_text(text, chunk_size)
    print(f"Source text: {info.length} characters")
    print(f"Chunk size: {chunk_size} characters")
    print(f"Total frames to stream: {info.expected_chunks}\n")
    return info


def export_frames(result, out_dir, family=CodeFamily.QR, size=SYMBOL_SIZE, prefix=EXPORT_PREFIX):
    """
    Save every envelope of a chunking run as a PNG.
    Returns the list of written paths; frames the encoder rejects are skipped.
    """
    # 1. Create output directory
    if not os.path.exists(out_dir):
        os.makedirs(out_dir)
        print(f"Created directory: {out_dir}")

    written = []
    for envelope in result.envelopes:
        img = render_symbol(envelope.to_payload(), family, size)
        if img is None:
            print(f"Skipped part {envelope.seq + 1}/{envelope.total}: payload does not fit a {CodeFamily.parse(family).value} symbol")
            continue

        # Use 3-digit padding for correct file sorting (e.g., 001, 002, ...)
        file_name = f"{prefix}_part_{envelope.seq + 1:03d}_of_{envelope.total:03d}.png"
        path = os.path.join(out_dir, file_name)
        img.save(path)
        written.append(path)
        print(f"Generated {file_name} (Part {envelope.seq + 1}/{envelope.total})")

    print(f"\nCreated {len(written)} of {result.total} frames in '{out_dir}'.")
    return written


def build_parser():
    parser = argparse.ArgumentParser(description="Stream text as a series of animated QR codes.")
    parser.add_argument("file", nargs="?", help="Text file to send (reads stdin if omitted).")
    parser.add_argument("--text", help="Send this text instead of reading a file.")
    parser.add_argument("--chunk-size", type=clamp_chunk_size, default=DEFAULT_CHUNK_SIZE,
                        help=f"Characters per frame ({MIN_CHUNK_SIZE}-{MAX_CHUNK_SIZE}, default {DEFAULT_CHUNK_SIZE}).")
    parser.add_argument("--fps", type=clamp_frame_rate, default=DEFAULT_FRAME_RATE,
                        help=f"Frames per second ({MIN_FRAME_RATE}-{MAX_FRAME_RATE}, default {DEFAULT_FRAME_RATE}).")
    parser.add_argument("--no-loop", dest="loop", action="store_false",
                        help="Stop after the last frame instead of starting over.")
    parser.add_argument("--paused", action="store_true", help="Open the window without starting playback.")
    parser.add_argument("--family", type=CodeFamily.parse, default=CodeFamily.QR,
                        help="Symbol family: qr, aztec or datamatrix (default qr).")
    parser.add_argument("--size", type=int, default=SYMBOL_SIZE, help="Symbol size in pixels.")
    parser.add_argument("--charset", default=DEFAULT_CHARSET, help="Charset applied before base64.")
    parser.add_argument("--strict", action="store_true",
                        help="Fail instead of sending empty frames for text the charset cannot encode.")
    parser.add_argument("--export", metavar="DIR", help="Write every frame as a PNG instead of opening a window.")
    parser.add_argument("--info", action="store_true", help="Print the text summary and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log playback details.")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 1. Get the text first
    try:
        text = read_source_text(args.file, args.text)
    except FileNotFoundError:
        print(f"Error: Source file '{args.file}' not found.")
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file: {e}")
        return 1

    print_text_info(text, args.chunk_size)
    if args.info:
        return 0

    # 2. Export mode: no window, just PNG files
    if args.export:
        try:
            result = chunk_text(text, args.chunk_size, charset=args.charset, strict=args.strict)
        except ChunkEncodingError as e:
            print(f"Error: {e}")
            return 1
        if not result.envelopes:
            print("Nothing to stream: the text is empty.")
            return 0
        export_frames(result, args.export, family=args.family, size=args.size)
        return 0 if result.ok else 1

    # 3. Create the main Tkinter window
    root = tk.Tk()
    root.geometry(WINDOW_GEOMETRY)

    try:
        session = StreamSession(
            root,
            text=text,
            chunk_size=args.chunk_size,
            frame_rate=args.fps,
            loop=args.loop,
            enabled=not args.paused,
            family=args.family,
            charset=args.charset,
            strict=args.strict,
        )
    except ChunkEncodingError as e:
        print(f"Error: {e}")
        root.destroy()
        return 1

    if not session.result.ok:
        print(f"Warning: {len(session.result.failures)} frame(s) could not be encoded and will be empty.")

    QRPresenter(root, session, size=args.size)
    try:
        # 4. Start the GUI event loop
        root.mainloop()
    finally:
        # 5. Clean up
        session.close()
        print("\nWindow closed. Exiting.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
