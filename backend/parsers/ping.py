"""Parser for system ping output (Linux, BSD/macOS, and Windows)."""

import re
from typing import Optional
from .base import (
    BaseParser,
    ParseResult,
    PingStatistics,
)


class PingParser(BaseParser):
    """Parser that turns the output of one ``ping`` run into PingStatistics."""

    source_type: str = "ping"

    def parse(self, data: str, format_hint: Optional[str] = None, **kwargs) -> ParseResult:
        """
        Parse ping output data.

        Args:
            data: The raw ping output data
            format_hint: Optional hint about format ("standard", "windows")
            **kwargs: Additional arguments (unused for now)

        Returns:
            ParseResult carrying the extracted statistics and any errors/warnings
        """
        result = ParseResult(success=False, source_type=self.source_type)

        if not data or not data.strip():
            result.errors.append("Empty input data")
            return result

        # Auto-detect format if not provided
        detected_format = format_hint or self.detect_format(data)

        if detected_format == "standard":
            return self._parse_standard_ping(data)
        elif detected_format == "windows":
            return self._parse_windows_ping(data)
        else:
            result.errors.append(f"Unable to detect ping format. Detected: {detected_format}")
            return result

    def detect_format(self, data: str) -> Optional[str]:
        """Detect whether input is Unix-style or Windows-style ping output."""
        data_stripped = data.strip()

        if re.search(r"^Pinging\s+\S+", data_stripped, re.MULTILINE) or "Packets: Sent" in data_stripped:
            return "windows"

        if re.search(r"PING\s+\S+", data_stripped) or re.search(
            r"ping statistics", data_stripped.lower()
        ):
            return "standard"

        return None

    def parse_statistics(self, data: str) -> PingStatistics:
        """Parse ping output, returning empty statistics when nothing is recognised."""
        result = self.parse(data)
        return result.statistics or PingStatistics()

    def _parse_standard_ping(self, data: str) -> ParseResult:
        """Parse Linux/BSD ping output (single host)."""
        result = ParseResult(success=True, source_type=self.source_type)
        stats = PingStatistics()

        for line in data.strip().split("\n"):
            line_stripped = line.strip()

            # Format: "PING 192.168.1.1 (192.168.1.1) 56(84) bytes of data."
            if line_stripped.startswith("PING"):
                ping_match = re.search(r"PING\s+(\S+)(?:\s+\(([^)]+)\))?", line_stripped)
                if ping_match:
                    stats.ip_address = ping_match.group(2) or ping_match.group(1)

            # Format: "64 bytes from 192.168.1.1: icmp_seq=1 ttl=64 time=1.23 ms"
            elif "bytes from" in line_stripped and "time=" in line_stripped:
                time_match = re.search(r"time=([0-9.]+)\s*ms", line_stripped)
                if time_match:
                    try:
                        stats.reply_times_ms.append(float(time_match.group(1)))
                    except ValueError:
                        pass

            # Linux: "3 packets transmitted, 3 received, 0% packet loss, time 2003ms"
            # BSD:   "3 packets transmitted, 3 packets received, 0.0% packet loss"
            elif "packets transmitted" in line_stripped.lower():
                transmitted_match = re.search(r"(\d+)\s+packets transmitted", line_stripped)
                if transmitted_match:
                    stats.packets_transmitted = int(transmitted_match.group(1))

                received_match = re.search(r"(\d+)\s+(?:packets\s+)?received", line_stripped)
                if received_match:
                    stats.packets_received = int(received_match.group(1))

                loss_match = re.search(r"([\d.]+)%\s+packet loss", line_stripped)
                if loss_match:
                    stats.packet_loss = loss_match.group(1)

            # Linux: "rtt min/avg/max/mdev = 0.045/0.051/0.060/0.006 ms"
            # BSD:   "round-trip min/avg/max/stddev = 1.1/1.2/1.3/0.1 ms"
            elif line_stripped.startswith(("rtt", "round-trip")):
                rtt_match = re.search(r"=\s*([\d.]+)/([\d.]+)/([\d.]+)", line_stripped)
                if rtt_match:
                    stats.min_ms, stats.avg_ms, stats.max_ms = rtt_match.groups()

        if stats.ip_address is None and stats.packets_transmitted is None:
            result.errors.append("No ping statistics found in output")
            result.success = False
            return result

        if not stats.alive and stats.ip_address:
            result.warnings.append(f"No response from {stats.ip_address}")

        result.statistics = stats
        return result

    def _parse_windows_ping(self, data: str) -> ParseResult:
        """Parse Windows ping.exe output (single host).

        ping.exe counts "Destination host unreachable" answers from a
        gateway as received packets, so the received count is taken from
        echo replies carrying a TTL instead of the summary line.

        "time<1ms" is recorded as 1.0, the upper bound ping.exe prints.
        """
        result = ParseResult(success=True, source_type=self.source_type)
        stats = PingStatistics()
        reply_lines = 0
        echo_replies = 0

        for line in data.strip().split("\n"):
            line_stripped = line.strip()

            # Format: "Pinging 10.0.0.1 with 32 bytes of data:"
            if line_stripped.startswith("Pinging"):
                ping_match = re.search(r"Pinging\s+(\S+)(?:\s+\[([^\]]+)\])?", line_stripped)
                if ping_match:
                    stats.ip_address = ping_match.group(2) or ping_match.group(1)

            # Format: "Reply from 10.0.0.1: bytes=32 time=1ms TTL=64" (or "time<1ms")
            elif line_stripped.startswith("Reply from"):
                reply_lines += 1
                if "TTL=" not in line_stripped:
                    continue
                echo_replies += 1
                time_match = re.search(r"time[=<](\d+)ms", line_stripped)
                if time_match:
                    stats.reply_times_ms.append(float(time_match.group(1)))

            # Format: "Packets: Sent = 4, Received = 4, Lost = 0 (0% loss),"
            elif line_stripped.startswith("Packets:"):
                sent_match = re.search(r"Sent\s*=\s*(\d+)", line_stripped)
                if sent_match:
                    stats.packets_transmitted = int(sent_match.group(1))
                received_match = re.search(r"Received\s*=\s*(\d+)", line_stripped)
                if received_match:
                    stats.packets_received = int(received_match.group(1))
                loss_match = re.search(r"\((\d+)%\s+loss\)", line_stripped)
                if loss_match:
                    stats.packet_loss = loss_match.group(1)

            # Format: "Minimum = 1ms, Maximum = 2ms, Average = 1ms"
            elif line_stripped.startswith("Minimum"):
                rtt_match = re.search(
                    r"Minimum\s*=\s*(\d+)ms,\s*Maximum\s*=\s*(\d+)ms,\s*Average\s*=\s*(\d+)ms",
                    line_stripped,
                )
                if rtt_match:
                    stats.min_ms, stats.max_ms, stats.avg_ms = rtt_match.groups()

        if reply_lines and echo_replies < (stats.packets_received or 0):
            stats.packets_received = echo_replies
            if stats.packets_transmitted:
                lost = stats.packets_transmitted - echo_replies
                stats.packet_loss = str(round(lost * 100 / stats.packets_transmitted))

        if stats.ip_address is None and stats.packets_transmitted is None:
            result.errors.append("No ping statistics found in output")
            result.success = False
            return result

        result.statistics = stats
        return result
