import uvicorn


def main(host: str = "0.0.0.0", port: int = 8000):
    uvicorn.run("pnode_monitor.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
