from skillminer.cli.click_app import main

if __name__ == "__main__":
    main()
