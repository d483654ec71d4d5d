"""
Route Confidence 서비스 진입점
실행: python run.py
접속: http://localhost:8000/docs
"""
import os
import sys
from pathlib import Path
import uvicorn


def check_data():
    """조회 테이블 확인"""
    data_dir = Path(os.getenv("RCI_DATA_DIR", "data"))
    required_files = [
        "failure_history.csv",
        "congestion_patterns.csv",
        "advisory_zones.csv",
    ]

    missing = [f for f in required_files if not (data_dir / f).exists()]
    if missing:
        print(f"[WARN]  일부 데이터 파일이 없습니다: {', '.join(missing)}")
        print("해당 페널티는 0으로 처리됩니다.")
        print()


def main():
    """메인 실행 함수"""
    print("=" * 60)
    print("Route Confidence - 통근 경로 신뢰도(RCI) 서비스")
    print("=" * 60)
    print()

    # 환경 변수 로드 (선택사항)
    try:
        from dotenv import load_dotenv
        load_dotenv()
    except ImportError:
        pass

    # 환경 확인
    check_data()

    # 서버 설정
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "True").lower() == "true"

    print(f"[*] 서버 주소: http://{host}:{port}")
    print(f"[*] 프로젝트 디렉토리: {Path.cwd()}")
    print(f"[*] 자동 재시작: {'활성화' if reload else '비활성화'}")
    print()
    print("서버를 중지하려면 Ctrl+C를 누르세요.")
    print("=" * 60)
    print()

    try:
        uvicorn.run(
            "api.app:app",
            host=host,
            port=port,
            reload=reload,
            reload_dirs=["api", "rci"],
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
        )
    except KeyboardInterrupt:
        print("\n\n[*] 서버를 종료합니다.")
    except Exception as e:
        print(f"\n[ERROR] 서버 실행 중 오류 발생: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
