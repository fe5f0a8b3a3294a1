from pathlib import Path

import pytest


@pytest.fixture
def unified_g1_log():
    """JDK17 G1 log with -Xlog:gc*,safepoint: multi-line pauses, a concurrent cycle, a safepoint."""
    return """[0.004s][info][gc] Using G1
[0.005s][info][gc,init] Version: 17.0.1+12 (release)
[0.005s][info][gc,init] Memory: 16G
[0.120s][info][gc,start     ] GC(0) Pause Young (Normal) (G1 Evacuation Pause)
[0.121s][info][gc,task      ] GC(0) Using 8 workers of 8 for evacuation
[0.125s][info][gc,phases    ] GC(0)   Pre Evacuate Collection Set: 0.1ms
[0.125s][info][gc,heap      ] GC(0) Eden regions: 24->0(22)
[0.125s][info][gc,heap      ] GC(0) Survivor regions: 0->3(3)
[0.125s][info][gc,heap      ] GC(0) Old regions: 0->1
[0.125s][info][gc,heap      ] GC(0) Humongous regions: 0->0
[0.125s][info][gc,metaspace ] GC(0) Metaspace: 1000K->1000K(1056768K)
[0.125s][info][gc           ] GC(0) Pause Young (Normal) (G1 Evacuation Pause) 24M->4M(256M) 5.123ms
[0.125s][info][gc,cpu       ] GC(0) User=0.02s Sys=0.00s Real=0.01s
[0.300s][info][gc,start     ] GC(1) Pause Young (Concurrent Start) (G1 Humongous Allocation)
[0.302s][info][gc,heap      ] GC(1) Humongous regions: 10->2
[0.302s][info][gc           ] GC(1) Pause Young (Concurrent Start) (G1 Humongous Allocation) 40M->20M(256M) 2.000ms
[0.302s][info][gc,cpu       ] GC(1) User=0.01s Sys=0.00s Real=0.01s
[0.302s][info][gc           ] GC(2) Concurrent Mark Cycle
[0.340s][info][gc,start     ] GC(2) Pause Remark
[0.342s][info][gc           ] GC(2) Pause Remark 22M->22M(256M) 1.500ms
[0.342s][info][gc,cpu       ] GC(2) User=0.00s Sys=0.00s Real=0.00s
[0.350s][info][gc           ] GC(2) Concurrent Mark Cycle 48.123ms
[0.400s][info][safepoint    ] Safepoint "G1CollectForAllocation", Time since last: 100000 ns, Reaching safepoint: 1000 ns, At safepoint: 2000000 ns, Total: 2001000 ns
"""


@pytest.fixture
def legacy_cms_log():
    """JDK8 CMS log with headers, an explicit full collection and a promotion failure."""
    return """OpenJDK 64-Bit Server VM (25.252-b09) for linux-amd64 JRE (1.8.0_252-b09), built on Apr 22 2020 10:38:50 by "mockbuild" with gcc 4.8.5 20150623 (Red Hat 4.8.5-39)
Memory: 4k page, physical 16266820k(1000000k free), swap 0k(0k free)
CommandLine flags: -XX:InitialHeapSize=1073741824 -XX:MaxHeapSize=2147483648 -XX:+PrintGC -XX:+PrintGCDetails -XX:+PrintGCTimeStamps -XX:+UseConcMarkSweepGC -XX:+UseParNewGC
2.345: [GC (Allocation Failure) 2.345: [ParNew: 1006K->128K(1152K), 0.0045000 secs] 1006K->500K(3968K), 0.0046000 secs] [Times: user=0.01 sys=0.00, real=0.01 secs]
3.000: [GC (CMS Initial Mark) [1 CMS-initial-mark: 2000K(2816K)] 2500K(3968K), 0.0010000 secs] [Times: user=0.00 sys=0.00, real=0.00 secs]
3.001: [CMS-concurrent-mark-start]
3.010: [CMS-concurrent-mark: 0.009/0.009 secs] [Times: user=0.02 sys=0.00, real=0.01 secs]
4.000: [Full GC (System.gc()) 4.000: [CMS: 2000K->1500K(2816K), 0.0200000 secs] 2500K->1500K(3968K), [Metaspace: 3000K->3000K(1056768K)], 0.0201000 secs] [Times: user=0.02 sys=0.00, real=0.02 secs]
5.000: [GC (Allocation Failure) 5.000: [ParNew (promotion failed): 1006K->1006K(1152K), 0.0050000 secs]5.005: [CMS: 2500K->1800K(2816K), 0.0300000 secs] 3000K->1800K(3968K), [Metaspace: 3000K->3000K(1056768K)], 0.0351000 secs] [Times: user=0.04 sys=0.00, real=0.04 secs]
"""


@pytest.fixture
def legacy_g1_log():
    """JDK8 G1 young collection wrapped over detail lines."""
    return """2.000: [GC pause (G1 Evacuation Pause) (young), 0.0123456 secs]
   [Parallel Time: 10.0 ms, GC Workers: 8]
      [GC Worker Start (ms): Min: 2000.0, Avg: 2000.1, Max: 2000.2, Diff: 0.2]
   [Eden: 24.0M(24.0M)->0.0B(21.0M) Survivors: 0.0B->3072.0K Heap: 24.0M(256.0M)->4096.0K(256.0M)]
 [Times: user=0.05 sys=0.01, real=0.01 secs]
"""


@pytest.fixture
def unified_parallel_log():
    """JDK11 Parallel log: young collection split over heap fragment lines."""
    return """[0.010s][info][gc] Using Parallel
[1.000s][info][gc,start    ] GC(0) Pause Young (Allocation Failure)
[1.010s][info][gc,heap     ] GC(0) PSYoungGen: 65536K->10000K(76288K)
[1.010s][info][gc,heap     ] GC(0) ParOldGen: 0K->8K(175104K)
[1.010s][info][gc,metaspace] GC(0) Metaspace: 5000K->5000K(1056768K)
[1.010s][info][gc          ] GC(0) Pause Young (Allocation Failure) 64M->9M(245M) 10.123ms
[1.010s][info][gc,cpu      ] GC(0) User=0.04s Sys=0.01s Real=0.01s
"""


@pytest.fixture
def shenandoah_log():
    return """[0.008s][info][gc] Using Shenandoah
[10.000s][info][gc] GC(5) Pause Init Mark (unload classes) 0.456ms
[10.100s][info][gc] GC(5) Concurrent marking (unload classes) 98M->100M(512M) 50.000ms
[12.000s][info][gc] GC(6) Pause Degenerated GC (Mark) 500M->300M(512M) 120.500ms
"""


@pytest.fixture
def write_log(tmp_path: Path):
    """Write log content to a file and return its path."""

    def _write(content: str, name: str = "gc.log") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
